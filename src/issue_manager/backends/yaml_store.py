"""YAML file backend implementation."""

from pathlib import Path
from typing import Any

import structlog
import yaml

from issue_manager.backend import Backend, filter_issues
from issue_manager.exceptions import ConfigurationError
from issue_manager.models import Issue, Link, LinkType, ProjectConfig

logger = structlog.get_logger()


class YamlBackend(Backend):
    """Backend storing issues, links and project configs in a single YAML file.

    The file is read once on initialization and rewritten after every
    mutation. There is no file locking; concurrent writers race and the
    last write wins.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize YAML backend.

        Args:
            path: Path to the store file, created on first write
        """
        self.path = Path(path)
        logger.debug("Initializing YAML backend", path=str(self.path))
        self._data: dict[str, Any] = self._load()
        logger.info("YAML backend initialized", path=str(self.path), issues=len(self._data["issues"]))

    def _load(self) -> dict[str, Any]:
        """Load the store from disk.

        Returns:
            Store dictionary with ``issues``, ``links`` and ``projects`` keys
        """
        data: dict[str, Any] = {}
        if self.path.exists():
            try:
                with open(self.path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.error("Failed to load store", path=str(self.path), error=str(e))
                raise ConfigurationError(f"Failed to load store from {self.path}: {e}") from e
        else:
            logger.debug("Store file does not exist, initializing empty store")

        if not isinstance(data, dict):
            logger.error("Store file is not a mapping", path=str(self.path))
            raise ConfigurationError(f"Store file {self.path} must contain a mapping")
        data.setdefault("issues", {})
        data.setdefault("links", [])
        data.setdefault("projects", {})
        return data

    def _save(self) -> None:
        """Write the store to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.path, "w") as f:
                yaml.safe_dump(self._data, f, default_flow_style=False, sort_keys=False)
            logger.debug("Store saved successfully", path=str(self.path))
        except OSError as e:
            logger.error("Failed to save store", error=str(e))
            raise ConfigurationError(f"Failed to save store to {self.path}: {e}") from e

    @staticmethod
    def _link_to_dict(link: Link) -> dict[str, str]:
        return {"source_id": link.source_id, "target_id": link.target_id, "link_type": link.link_type.value}

    @staticmethod
    def _dict_to_link(data: dict[str, str]) -> Link:
        return Link(
            source_id=str(data["source_id"]),
            target_id=str(data["target_id"]),
            link_type=LinkType.parse(data.get("link_type", "relates_to")),
        )

    def find_issue(self, issue_id: str) -> Issue | None:
        data = self._data["issues"].get(issue_id)
        return Issue.from_dict(data) if data is not None else None

    def save_issue(self, issue: Issue) -> None:
        logger.debug("Saving issue", issue_id=issue.id, key=issue.key)
        self._data["issues"][issue.id] = issue.to_dict()
        self._save()

    def delete_issue(self, issue_id: str) -> None:
        if self._data["issues"].pop(issue_id, None) is not None:
            logger.debug("Deleted issue", issue_id=issue_id)
            self._save()

    def list_issues(
        self,
        project: str | None = None,
        filters: dict[str, str] | None = None,
        sort_by: str | None = None,
        limit: int | None = None,
    ) -> list[Issue]:
        issues = [Issue.from_dict(data) for data in self._data["issues"].values()]
        return filter_issues(issues, project=project, filters=filters, sort_by=sort_by, limit=limit)

    def add_link(self, link: Link) -> None:
        logger.debug("Adding link", source_id=link.source_id, target_id=link.target_id, link_type=link.link_type.value)
        self._data["links"].append(self._link_to_dict(link))
        self._save()

    def remove_links(self, first_id: str, second_id: str) -> int:
        links = [self._dict_to_link(data) for data in self._data["links"]]
        kept = [link for link in links if not link.connects(first_id, second_id)]
        removed = len(links) - len(kept)
        if removed:
            self._data["links"] = [self._link_to_dict(link) for link in kept]
            self._save()
        return removed

    def list_links(self, issue_id: str) -> list[Link]:
        links = [self._dict_to_link(data) for data in self._data["links"]]
        return [link for link in links if link.involves(issue_id)]

    def get_project_config(self, project: str) -> ProjectConfig | None:
        data = self._data["projects"].get(project)
        return ProjectConfig.from_dict(data) if data is not None else None

    def save_project_config(self, config: ProjectConfig) -> None:
        logger.debug("Saving project config", project=config.project)
        self._data["projects"][config.project] = config.to_dict()
        self._save()
