"""Redmine REST API client (JSON format)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from typing import Any, cast

import requests
from dotenv import load_dotenv

from .dates import parse_date
from .exceptions import RedganttError
from .logger import get_logger
from .netrc_utils import get_redmine_api_key_from_netrc

load_dotenv()

logger = get_logger()

API_KEY_HEADER = "X-Redmine-API-Key"


class RedmineError(RedganttError):
    """Redmine-specific error."""


class RedmineAuthError(RedmineError):
    """Missing or rejected Redmine credentials."""


@dataclass(frozen=True)
class RedmineRelation:
    """An issue relation as Redmine reports it (``issue_id`` relation ``issue_to_id``)."""

    id: int | None
    issue_id: int
    issue_to_id: int
    relation_type: str
    delay: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RedmineRelation:
        delay = data.get("delay")
        return cls(
            id=cast(int | None, data.get("id")),
            issue_id=int(data["issue_id"]),
            issue_to_id=int(data["issue_to_id"]),
            relation_type=str(data.get("relation_type", "")),
            delay=int(delay) if delay is not None else None,
        )


@dataclass(frozen=True)
class RedmineIssue:
    """The parts of an issue the scheduler needs."""

    id: int
    subject: str
    start_date: date | None
    due_date: date | None
    status: str = ""
    parent_id: int | None = None
    relations: tuple[RedmineRelation, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RedmineIssue:
        status = cast(dict[str, Any], data.get("status") or {})
        parent = cast(dict[str, Any], data.get("parent") or {})
        relations = cast(list[dict[str, Any]], data.get("relations") or [])
        return cls(
            id=int(data["id"]),
            subject=str(data.get("subject") or f"Issue {data['id']}"),
            start_date=parse_date(data.get("start_date")),
            due_date=parse_date(data.get("due_date")),
            status=str(status.get("name", "")),
            parent_id=cast(int | None, parent.get("id")),
            relations=tuple(RedmineRelation.from_dict(r) for r in relations),
        )


@dataclass(frozen=True)
class RedmineProject:
    id: int
    identifier: str
    name: str


class RedmineClient:
    """Thin wrapper around the Redmine JSON API."""

    def __init__(  # noqa: PLR0913 - connection settings are all optional keywords
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        timeout_seconds: float = 30.0,
        verify_ssl: bool = True,
        page_size: int = 100,
        session: requests.Session | None = None,
    ):
        """Initialize the client.

        Credential lookup order: ``api_key`` argument, ``REDMINE_API_KEY``
        environment variable (a ``.env`` file is honoured), then the password of
        the host's ``.netrc`` entry.

        Raises:
            RedmineError: If no base URL is configured
            RedmineAuthError: If no API key can be found
        """
        url = base_url or os.getenv("REDMINE_URL")
        if not url:
            raise RedmineError("Redmine URL not configured. Set redmine.base_url or REDMINE_URL.")
        self.base_url = url.rstrip("/")
        self.api_key = (
            api_key or os.getenv("REDMINE_API_KEY") or get_redmine_api_key_from_netrc(self.base_url)
        )
        if not self.api_key:
            raise RedmineAuthError(
                "Redmine API key not found. Set REDMINE_API_KEY or add the host to ~/.netrc."
            )
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self.page_size = page_size

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                API_KEY_HEADER: self.api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{path}"
        logger.debug(f"{method} {url} params={params}")
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=payload,
                timeout=self.timeout_seconds,
                verify=self.verify_ssl,
            )
        except requests.RequestException as e:
            raise RedmineError(f"Request to {url} failed: {e}") from e

        if response.status_code in (401, 403):
            raise RedmineAuthError(
                f"Redmine rejected the request to {path} (HTTP {response.status_code}); "
                "check the API key and permissions"
            )
        if response.status_code == 404:
            raise RedmineError(f"Not found: {path}")
        if response.status_code >= 400:
            raise RedmineError(
                f"Redmine returned HTTP {response.status_code} for {path}: "
                f"{self._error_text(response)}"
            )

        if not response.content:
            return {}
        try:
            return cast(dict[str, Any], response.json())
        except ValueError as e:
            raise RedmineError(f"Invalid JSON from {path}: {e}") from e

    @staticmethod
    def _error_text(response: requests.Response) -> str:
        try:
            errors = response.json().get("errors")
        except (ValueError, AttributeError):
            errors = None
        if errors:
            return "; ".join(str(e) for e in errors)
        return response.text or response.reason or "no details"

    def _paginate(self, path: str, key: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        offset = 0
        while True:
            data = self._request(
                "GET", path, params={**params, "limit": self.page_size, "offset": offset}
            )
            page = cast(list[dict[str, Any]], data.get(key) or [])
            items.extend(page)
            offset += len(page)
            total = int(data.get("total_count", offset))
            if not page or offset >= total:
                return items

    def validate_connection(self) -> bool:
        """Check the URL and API key by fetching the current user."""
        data = self._request("GET", "users/current.json")
        return "user" in data

    def list_projects(self) -> list[RedmineProject]:
        raw = self._paginate("projects.json", "projects", {})
        return [
            RedmineProject(
                id=int(p["id"]),
                identifier=str(p.get("identifier", "")),
                name=str(p.get("name", "")),
            )
            for p in raw
        ]

    def list_issues(self, project_id: int | str, sort: str = "id:asc") -> list[RedmineIssue]:
        """All issues of a project, any status, relations included."""
        raw = self._paginate(
            "issues.json",
            "issues",
            {"project_id": project_id, "status_id": "*", "include": "relations", "sort": sort},
        )
        return [RedmineIssue.from_dict(issue) for issue in raw]

    def get_issue(self, issue_id: int) -> RedmineIssue:
        data = self._request(
            "GET", f"issues/{issue_id}.json", params={"include": "relations,children"}
        )
        if "issue" not in data:
            raise RedmineError(f"Issue {issue_id} missing from response")
        return RedmineIssue.from_dict(cast(dict[str, Any], data["issue"]))

    def update_issue_dates(self, issue_id: int, start: date, due: date) -> None:
        self._request(
            "PUT",
            f"issues/{issue_id}.json",
            payload={"issue": {"start_date": start.isoformat(), "due_date": due.isoformat()}},
        )

    def create_relation(
        self, predecessor_id: int, successor_id: int, delay: int = 0
    ) -> RedmineRelation:
        """Create ``predecessor precedes successor`` with the given delay in days."""
        data = self._request(
            "POST",
            f"issues/{predecessor_id}/relations.json",
            payload={
                "relation": {
                    "issue_to_id": successor_id,
                    "relation_type": "precedes",
                    "delay": delay,
                }
            },
        )
        relation = cast(dict[str, Any], data.get("relation") or {})
        if not relation:
            return RedmineRelation(
                id=None,
                issue_id=predecessor_id,
                issue_to_id=successor_id,
                relation_type="precedes",
                delay=delay,
            )
        return RedmineRelation.from_dict(relation)

    def delete_relation(self, relation_id: int) -> None:
        self._request("DELETE", f"relations/{relation_id}.json")
