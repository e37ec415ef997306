"""Tests for netrc_utils module."""

import netrc
from pathlib import Path
from unittest.mock import MagicMock, patch

from redgantt.netrc_utils import get_redmine_api_key_from_netrc


class TestGetRedmineApiKeyFromNetrc:
    """Tests for get_redmine_api_key_from_netrc function."""

    @patch("redgantt.netrc_utils.netrc.netrc")
    @patch("redgantt.netrc_utils.Path.home")
    def test_matching_machine(self, mock_home: MagicMock, mock_netrc_class: MagicMock) -> None:
        """The password field holds the API key."""
        mock_home.return_value = Path("/home/user")
        mock_netrc_instance = MagicMock()
        mock_netrc_instance.authenticators.return_value = ("api", None, "0123abcd")
        mock_netrc_class.return_value = mock_netrc_instance

        with patch.object(Path, "exists", return_value=True):
            api_key = get_redmine_api_key_from_netrc("https://redmine.example.com/redmine")

        assert api_key == "0123abcd"
        mock_netrc_instance.authenticators.assert_called_once_with("redmine.example.com")

    @patch("redgantt.netrc_utils.netrc.netrc")
    @patch("redgantt.netrc_utils.Path.home")
    def test_no_matching_machine(self, mock_home: MagicMock, mock_netrc_class: MagicMock) -> None:
        mock_home.return_value = Path("/home/user")
        mock_netrc_instance = MagicMock()
        mock_netrc_instance.authenticators.return_value = None
        mock_netrc_class.return_value = mock_netrc_instance

        with patch.object(Path, "exists", return_value=True):
            assert get_redmine_api_key_from_netrc("https://redmine.example.com") is None

    @patch("redgantt.netrc_utils.Path.home")
    def test_no_netrc_file(self, mock_home: MagicMock) -> None:
        mock_home.return_value = Path("/home/user")
        with patch.object(Path, "exists", return_value=False):
            assert get_redmine_api_key_from_netrc("https://redmine.example.com") is None

    @patch("redgantt.netrc_utils.netrc.netrc")
    @patch("redgantt.netrc_utils.Path.home")
    def test_parse_error(self, mock_home: MagicMock, mock_netrc_class: MagicMock) -> None:
        mock_home.return_value = Path("/home/user")
        mock_netrc_class.side_effect = netrc.NetrcParseError("bad line")

        with patch.object(Path, "exists", return_value=True):
            assert get_redmine_api_key_from_netrc("https://redmine.example.com") is None

    def test_real_file(self, tmp_path: Path) -> None:
        netrc_file = tmp_path / ".netrc"
        netrc_file.write_text("machine redmine.local\nlogin api\npassword secretkey\n", encoding="utf-8")
        netrc_file.chmod(0o600)
        with patch("redgantt.netrc_utils.Path.home", return_value=tmp_path):
            assert get_redmine_api_key_from_netrc("http://redmine.local:3000") == "secretkey"

    def test_bare_hostname(self) -> None:
        with patch("redgantt.netrc_utils.Path.home", return_value=Path("/nonexistent")):
            assert get_redmine_api_key_from_netrc("redmine.example.com") is None

    def test_empty_url(self) -> None:
        assert get_redmine_api_key_from_netrc("") is None
