"""Backend interface for issue storage and project configuration."""

import uuid
from abc import ABC, abstractmethod

from issue_manager.exceptions import NotFound
from issue_manager.models import Issue, Link, ProjectConfig


class Backend(ABC):
    """Abstract base class for issue storage backends.

    Backends provide read-modify-write atomicity per issue record at most;
    concurrent conflicting writes resolve as last write wins.
    """

    @abstractmethod
    def find_issue(self, issue_id: str) -> Issue | None:
        """Read an issue by ID, or None if it does not exist."""
        pass

    @abstractmethod
    def save_issue(self, issue: Issue) -> None:
        """Insert or replace an issue."""
        pass

    @abstractmethod
    def delete_issue(self, issue_id: str) -> None:
        """Remove an issue record. Missing records are ignored."""
        pass

    @abstractmethod
    def list_issues(
        self,
        project: str | None = None,
        filters: dict[str, str] | None = None,
        sort_by: str | None = None,
        limit: int | None = None,
    ) -> list[Issue]:
        """List issues with optional filtering, sorting, and limiting."""
        pass

    @abstractmethod
    def add_link(self, link: Link) -> None:
        """Store a link record."""
        pass

    @abstractmethod
    def remove_links(self, first_id: str, second_id: str) -> int:
        """Remove every link joining two issues in either direction.

        Returns:
            Number of removed link records
        """
        pass

    @abstractmethod
    def list_links(self, issue_id: str) -> list[Link]:
        """List link records where the issue is either end."""
        pass

    @abstractmethod
    def get_project_config(self, project: str) -> ProjectConfig | None:
        """Read the project configuration, or None when the project uses defaults."""
        pass

    @abstractmethod
    def save_project_config(self, config: ProjectConfig) -> None:
        """Insert or replace a project configuration."""
        pass

    def new_id(self) -> str:
        """Generate a stable unique ID for a new issue."""
        return uuid.uuid4().hex

    def get_issue(self, issue_id: str) -> Issue:
        """Read an issue by ID.

        Raises:
            NotFound: If the issue does not exist
        """
        issue = self.find_issue(issue_id)
        if issue is None:
            raise NotFound(f"Issue {issue_id} not found")
        return issue


def filter_issues(
    issues: list[Issue],
    project: str | None = None,
    filters: dict[str, str] | None = None,
    sort_by: str | None = None,
    limit: int | None = None,
) -> list[Issue]:
    """Apply the common list filtering rules shared by in-process backends."""
    if project is not None:
        issues = [issue for issue in issues if issue.project == project]
    for name, value in (filters or {}).items():
        if name == "parent":
            issues = [issue for issue in issues if issue.parent is not None and issue.parent.id == value]
        elif name in ("type", "status", "priority", "key"):
            issues = [issue for issue in issues if getattr(issue, name) == value]
        else:
            issues = [issue for issue in issues if str(issue.fields.get(name)) == value]
    if sort_by:
        descending = sort_by.startswith("-")
        attr = sort_by.lstrip("-")
        issues = sorted(issues, key=lambda issue: str(getattr(issue, attr, "") or ""), reverse=descending)
    if limit:
        issues = issues[:limit]
    return issues
