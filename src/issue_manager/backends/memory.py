"""In-memory backend implementation."""

import copy

import structlog

from issue_manager.backend import Backend, filter_issues
from issue_manager.models import Issue, Link, ProjectConfig

logger = structlog.get_logger()


class MemoryBackend(Backend):
    """Process-local backend; records are copied in and out like a real store."""

    def __init__(self) -> None:
        self.issues: dict[str, Issue] = {}
        self.links: list[Link] = []
        self.configs: dict[str, ProjectConfig] = {}
        logger.debug("Memory backend initialized")

    def find_issue(self, issue_id: str) -> Issue | None:
        issue = self.issues.get(issue_id)
        return copy.deepcopy(issue) if issue is not None else None

    def save_issue(self, issue: Issue) -> None:
        logger.debug("Saving issue", issue_id=issue.id)
        self.issues[issue.id] = copy.deepcopy(issue)

    def delete_issue(self, issue_id: str) -> None:
        logger.debug("Deleting issue", issue_id=issue_id)
        self.issues.pop(issue_id, None)

    def list_issues(
        self,
        project: str | None = None,
        filters: dict[str, str] | None = None,
        sort_by: str | None = None,
        limit: int | None = None,
    ) -> list[Issue]:
        issues = [copy.deepcopy(issue) for issue in self.issues.values()]
        return filter_issues(issues, project=project, filters=filters, sort_by=sort_by, limit=limit)

    def add_link(self, link: Link) -> None:
        logger.debug("Adding link", source_id=link.source_id, target_id=link.target_id, link_type=link.link_type.value)
        self.links.append(copy.copy(link))

    def remove_links(self, first_id: str, second_id: str) -> int:
        kept = [link for link in self.links if not link.connects(first_id, second_id)]
        removed = len(self.links) - len(kept)
        self.links = kept
        return removed

    def list_links(self, issue_id: str) -> list[Link]:
        return [copy.copy(link) for link in self.links if link.involves(issue_id)]

    def get_project_config(self, project: str) -> ProjectConfig | None:
        config = self.configs.get(project)
        return copy.deepcopy(config) if config is not None else None

    def save_project_config(self, config: ProjectConfig) -> None:
        logger.debug("Saving project config", project=config.project)
        self.configs[config.project] = copy.deepcopy(config)
