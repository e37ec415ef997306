"""Tests for CLI commands."""

from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from redgantt.cli import app
from redgantt.redmine_client import RedmineAuthError, RedmineError, RedmineIssue, RedmineProject, RedmineRelation

runner = CliRunner()

ISSUES_YAML = """\
metadata:
  epoch: 2025-03-01
  project_id: 12
tasks:
  "10":
    name: Design
    duration: 3
  "11":
    name: Build
    duration: 2
"""


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "wbs.yaml"
    result = runner.invoke(app, ["sample", str(path)])
    assert result.exit_code == 0, result.output
    return path


@pytest.fixture
def issues_file(tmp_path: Path) -> Path:
    path = tmp_path / "issues.yaml"
    path.write_text(ISSUES_YAML, encoding="utf-8")
    return path


def _tasks(path: Path) -> dict[str, dict[str, object]]:
    return yaml.safe_load(path.read_text(encoding="utf-8"))["tasks"]


class TestSampleAndShow:
    def test_sample_written(self, sample_file: Path) -> None:
        tasks = _tasks(sample_file)
        assert tasks["3"]["preds"] == ["2.1", "2.2"]
        assert tasks["1"] == {"name": "Planning", "duration": 3}

    def test_sample_refuses_overwrite(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["sample", str(sample_file)])
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert runner.invoke(app, ["sample", str(sample_file), "--force"]).exit_code == 0

    def test_show(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["show", str(sample_file)])
        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0].split() == ["ID", "Name", "Dur", "ES", "EF", "LS", "LF", "Slack"]
        row_21 = next(line for line in lines if line.startswith("2.1 "))
        assert row_21.split()[-4:] == ["31", "27", "33", "2"]
        row_22 = next(line for line in lines if line.startswith("2.2 "))
        assert row_22.endswith(" *")
        assert "Project finish: day 38" in result.stdout

    def test_show_dates(self, issues_file: Path) -> None:
        result = runner.invoke(app, ["show", str(issues_file), "--dates"])
        assert result.exit_code == 0, result.output
        assert "2025-03-01" in result.stdout
        assert "2025-03-03" in result.stdout

    def test_show_dates_needs_epoch(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["show", str(sample_file), "--dates"])
        assert result.exit_code == 1
        assert "metadata.epoch" in result.output

    def test_show_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["show", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "Error: File not found" in result.output

    def test_critical(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["critical", str(sample_file)])
        assert result.exit_code == 0
        ids = [line.split("\t")[0] for line in result.stdout.splitlines()]
        assert ids == ["1", "1.1", "1.2", "2", "2.2", "3"]


class TestEditCommands:
    def test_link(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["link", str(sample_file), "3", "1.2", "--lag", "2"])
        assert result.exit_code == 0, result.output
        assert "Added link 1.2 -> 3" in result.stdout
        assert _tasks(sample_file)["3"]["preds"] == ["2.1", "2.2", "1.2:2"]

    def test_link_kind(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["link", str(sample_file), "2.1", "2", "--kind", "ss", "--lag", "1"])
        assert result.exit_code == 0, result.output
        assert "Updated link 2 -> 2.1" in result.stdout
        assert _tasks(sample_file)["2.1"]["preds"] == ["2:1:SS"]

    def test_link_unchanged(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["link", str(sample_file), "1.1", "1"])
        assert result.exit_code == 0
        assert "already exists" in result.stdout

    def test_link_cycle_leaves_file_alone(self, sample_file: Path) -> None:
        before = sample_file.read_text(encoding="utf-8")
        result = runner.invoke(app, ["link", str(sample_file), "1", "3"])
        assert result.exit_code == 1
        assert "Error: Circular dependency detected: 3 -> 1" in result.output
        assert sample_file.read_text(encoding="utf-8") == before

    def test_link_invalid_kind(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["link", str(sample_file), "3", "1", "--kind", "XY"])
        assert result.exit_code == 1
        assert "Invalid link kind" in result.output

    def test_link_unknown_task(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["link", str(sample_file), "3", "99"])
        assert result.exit_code == 1
        assert "Unknown task: 99" in result.output

    def test_unlink(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["unlink", str(sample_file), "3", "2.1"])
        assert result.exit_code == 0, result.output
        assert _tasks(sample_file)["3"]["preds"] == ["2.2"]

    def test_unlink_missing(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["unlink", str(sample_file), "3", "1"])
        assert result.exit_code == 1
        assert "No link 1 -> 3" in result.output

    def test_constrain(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["constrain", str(sample_file), "2.1", "27"])
        assert result.exit_code == 0, result.output
        assert "2.1: ES=27 EF=33 slack=0" in result.stdout
        assert _tasks(sample_file)["2.1"]["start_min"] == 27

    def test_resize(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["resize", str(sample_file), "2.1", "10"])
        assert result.exit_code == 0, result.output
        assert "2.1: duration=10; project finish: day 40" in result.stdout

    def test_verbose_logs_changes(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["-v", "1", "link", str(sample_file), "3", "1"])
        assert result.exit_code == 0, result.output
        assert "Added link 1 -> 3 (FS+0)" in result.output

    def test_config_option(self, tmp_path: Path) -> None:
        config = tmp_path / "cfg.yaml"
        config.write_text("scheduler:\n  cycle_check: connected\n", encoding="utf-8")
        result = runner.invoke(app, ["-c", str(config), "sample", str(tmp_path / "out.yaml")])
        assert result.exit_code == 1
        assert "Circular dependency" in result.output


class TestRedmineCommands:
    @patch("redgantt.cli.RedmineClient")
    def test_projects(self, mock_client_class: MagicMock) -> None:
        mock_client_class.return_value.list_projects.return_value = [RedmineProject(3, "web", "Web site")]
        result = runner.invoke(app, ["projects"])
        assert result.exit_code == 0, result.output
        assert "3\tweb\tWeb site" in result.stdout

    @patch("redgantt.cli.RedmineClient")
    def test_auth_error(self, mock_client_class: MagicMock) -> None:
        mock_client_class.side_effect = RedmineAuthError("Redmine API key not found")
        result = runner.invoke(app, ["projects"])
        assert result.exit_code == 1
        assert "Error: Redmine API key not found" in result.output

    @patch("redgantt.cli.RedmineClient")
    def test_client_settings_from_config(self, mock_client_class: MagicMock, tmp_path: Path) -> None:
        config = tmp_path / "cfg.yaml"
        config.write_text(
            "redmine:\n  base_url: https://rm.example.com/\n  page_size: 50\n  verify_ssl: false\n",
            encoding="utf-8",
        )
        mock_client_class.return_value.list_projects.return_value = []
        result = runner.invoke(app, ["-c", str(config), "projects"])
        assert result.exit_code == 0, result.output
        mock_client_class.assert_called_once_with(
            "https://rm.example.com", timeout_seconds=30.0, verify_ssl=False, page_size=50
        )

    @patch("redgantt.cli.RedmineClient")
    def test_pull(self, mock_client_class: MagicMock, tmp_path: Path) -> None:
        relation = RedmineRelation(1, 10, 11, "precedes", 0)
        undated = RedmineRelation(2, 12, 10, "blocks")
        mock_client_class.return_value.list_issues.return_value = [
            RedmineIssue(10, "Design", date(2025, 3, 3), date(2025, 3, 5), relations=(relation, undated)),
            RedmineIssue(11, "Build", date(2025, 3, 6), date(2025, 3, 7), relations=(relation,)),
            RedmineIssue(12, "Someday", None, None, relations=(undated,)),
        ]
        output = tmp_path / "pulled.yaml"
        result = runner.invoke(app, ["pull", str(output), "--project", "web"])

        assert result.exit_code == 0, result.output
        assert "Pulled 2 issues" in result.stdout
        assert "Skipped relations" in result.stderr
        assert "#12 -> #10" in result.stderr
        mock_client_class.return_value.list_issues.assert_called_once_with("web")
        data = yaml.safe_load(output.read_text(encoding="utf-8"))
        assert data["metadata"] == {"epoch": date(2025, 3, 1), "project_id": "web"}
        assert data["tasks"]["11"]["preds"] == ["10"]
        assert data["tasks"]["10"]["start_min"] == 2

    @patch("redgantt.cli.RedmineClient")
    def test_pull_keeps_relation_delay(self, mock_client_class: MagicMock, tmp_path: Path) -> None:
        relation = RedmineRelation(1, 10, 11, "precedes", 1)
        mock_client_class.return_value.list_issues.return_value = [
            RedmineIssue(10, "Design", date(2025, 3, 3), date(2025, 3, 5), relations=(relation,)),
            RedmineIssue(11, "Build", date(2025, 3, 7), date(2025, 3, 7), relations=(relation,)),
        ]
        output = tmp_path / "pulled.yaml"
        assert runner.invoke(app, ["pull", str(output), "-p", "web"]).exit_code == 0

        result = runner.invoke(app, ["show", str(output)])
        assert result.exit_code == 0, result.output
        assert _tasks(output)["11"]["preds"] == ["10:1"]

    @patch("redgantt.cli.RedmineClient")
    def test_pull_project_from_config(self, mock_client_class: MagicMock, tmp_path: Path) -> None:
        config = tmp_path / "cfg.yaml"
        config.write_text(
            "redmine:\n  base_url: https://rm.example.com\n  project_id: ops\n", encoding="utf-8"
        )
        mock_client_class.return_value.list_issues.return_value = []
        output = tmp_path / "pulled.yaml"
        result = runner.invoke(app, ["-c", str(config), "pull", str(output)])
        assert result.exit_code == 0, result.output
        mock_client_class.return_value.list_issues.assert_called_once_with("ops")

    def test_pull_without_project(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["pull", str(tmp_path / "pulled.yaml")])
        assert result.exit_code == 1
        assert "No project given" in result.output

    @patch("redgantt.cli.RedmineClient")
    def test_validate(self, mock_client_class: MagicMock) -> None:
        client = mock_client_class.return_value
        client.base_url = "https://rm.example.com"
        client.validate_connection.return_value = True
        result = runner.invoke(app, ["validate"])
        assert result.exit_code == 0, result.output
        assert "Connected to https://rm.example.com" in result.stdout

    @patch("redgantt.cli.RedmineClient")
    def test_validate_rejected_key(self, mock_client_class: MagicMock) -> None:
        mock_client_class.return_value.validate_connection.side_effect = RedmineAuthError(
            "Redmine rejected the API key"
        )
        result = runner.invoke(app, ["validate"])
        assert result.exit_code == 1
        assert "Error: Redmine rejected the API key" in result.output

    def test_push_dry_run(self, issues_file: Path) -> None:
        result = runner.invoke(app, ["push", str(issues_file), "--dry-run"])
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == [
            "#10\t2025-03-01\t2025-03-03",
            "#11\t2025-03-01\t2025-03-02",
        ]

    @patch("redgantt.cli.RedmineClient")
    def test_push(self, mock_client_class: MagicMock, issues_file: Path) -> None:
        client = mock_client_class.return_value
        result = runner.invoke(app, ["push", str(issues_file), "11"])
        assert result.exit_code == 0, result.output
        client.update_issue_dates.assert_called_once_with(11, date(2025, 3, 1), date(2025, 3, 2))
        assert "Updated 1 issue(s)" in result.stdout

    @patch("redgantt.cli.RedmineClient")
    def test_push_failure(self, mock_client_class: MagicMock, issues_file: Path) -> None:
        mock_client_class.return_value.update_issue_dates.side_effect = RedmineError("HTTP 422")
        result = runner.invoke(app, ["push", str(issues_file)])
        assert result.exit_code == 1
        assert "not updated" in result.output

    def test_push_needs_epoch(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["push", str(sample_file)])
        assert result.exit_code == 1
        assert "metadata.epoch" in result.output

    @patch("redgantt.cli.RedmineClient")
    def test_link_push(self, mock_client_class: MagicMock, issues_file: Path) -> None:
        client = mock_client_class.return_value
        result = runner.invoke(app, ["link", str(issues_file), "11", "10", "--lag", "1", "--push"])
        assert result.exit_code == 0, result.output
        client.create_relation.assert_called_once_with(10, 11, delay=1)
        assert _tasks(issues_file)["11"]["preds"] == ["10:1"]

    @patch("redgantt.cli.RedmineClient")
    def test_link_push_failure_keeps_local_link(self, mock_client_class: MagicMock, issues_file: Path) -> None:
        mock_client_class.return_value.create_relation.side_effect = RedmineError("HTTP 422")
        result = runner.invoke(app, ["link", str(issues_file), "11", "10", "--push"])
        assert result.exit_code == 1
        assert "kept locally" in result.output
        assert _tasks(issues_file)["11"]["preds"] == ["10"]

    def test_link_push_only_finish_to_start(self, issues_file: Path) -> None:
        result = runner.invoke(app, ["link", str(issues_file), "11", "10", "--push", "--kind", "SS"])
        assert result.exit_code == 1
        assert "Only finish-to-start" in result.output

    @patch("redgantt.cli.RedmineClient")
    def test_unlink_push(self, mock_client_class: MagicMock, issues_file: Path) -> None:
        assert runner.invoke(app, ["link", str(issues_file), "11", "10"]).exit_code == 0
        client = mock_client_class.return_value
        client.get_issue.return_value = RedmineIssue(
            11,
            "Build",
            date(2025, 3, 4),
            date(2025, 3, 5),
            relations=(RedmineRelation(60, 10, 11, "precedes", 0), RedmineRelation(61, 11, 12, "relates")),
        )
        result = runner.invoke(app, ["unlink", str(issues_file), "11", "10", "--push"])

        assert result.exit_code == 0, result.output
        assert "Removed link 10 -> 11" in result.stdout
        client.get_issue.assert_called_once_with(11)
        client.delete_relation.assert_called_once_with(60)
        assert "preds" not in _tasks(issues_file)["11"]

    @patch("redgantt.cli.RedmineClient")
    def test_unlink_push_failure_keeps_local_removal(
        self, mock_client_class: MagicMock, issues_file: Path
    ) -> None:
        assert runner.invoke(app, ["link", str(issues_file), "11", "10"]).exit_code == 0
        mock_client_class.return_value.get_issue.side_effect = RedmineError("HTTP 500")
        result = runner.invoke(app, ["unlink", str(issues_file), "11", "10", "--push"])
        assert result.exit_code == 1
        assert "removed locally" in result.output
        assert "preds" not in _tasks(issues_file)["11"]

    @patch("redgantt.cli.RedmineClient")
    def test_unlink_push_missing_link(self, mock_client_class: MagicMock, issues_file: Path) -> None:
        result = runner.invoke(app, ["unlink", str(issues_file), "11", "10", "--push"])
        assert result.exit_code == 1
        assert "No link 10 -> 11" in result.output
        mock_client_class.return_value.get_issue.assert_not_called()
