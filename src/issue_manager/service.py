"""Request layer over the workflow and relationship engine.

Each public method corresponds to one request a transport layer would
expose (``POST link``, ``GET hierarchy/:id``, ``PATCH issue/:id`` ...) and
returns plain data ready to serialize.
"""

from typing import Any

import structlog

from issue_manager.backend import Backend
from issue_manager.board import BoardProjector
from issue_manager.defaults import DEFAULTS, SUBTASK_TYPE, Defaults
from issue_manager.exceptions import IllegalTransition, InvalidRelationship, IssueManagerError, ValidationError
from issue_manager.graph import RelationshipGraph
from issue_manager.models import Issue, IssueType, Priority, ProjectConfig, Status
from issue_manager.workflow import TransitionValidator, WorkflowRegistry

logger = structlog.get_logger()

FIRST_ISSUE_NUMBER = 1001
RELATIONSHIP_FIELDS = {"parent", "children", "links", "linked"}


class IssueService:
    """Entry point used by the CLI and by any transport layer."""

    def __init__(self, backend: Backend, defaults: Defaults = DEFAULTS) -> None:
        self.backend = backend
        self.registry = WorkflowRegistry(backend, defaults)
        self.validator = TransitionValidator(self.registry)
        self.graph = RelationshipGraph(backend, self.validator)
        self.board_projector = BoardProjector(self.validator)

    # -- Project configuration ----------------------------------------------

    def project_config(self, project: str) -> dict[str, Any]:
        """Return the effective configuration of a project."""
        config = self.backend.get_project_config(project)
        using_defaults = config is None
        if config is None:
            config = self.registry.defaults.seed_config(project)
        data = config.to_dict()
        data["using_defaults"] = using_defaults
        return data

    def init_project_config(self, project: str) -> ProjectConfig:
        """Seed a project configuration from the default table."""
        if self.backend.get_project_config(project) is not None:
            raise ValidationError(f"Project configuration for {project} already exists")
        config = self.registry.defaults.seed_config(project)
        self.backend.save_project_config(config)
        logger.info("Project config initialized", project=project)
        return config

    def update_project_config(
        self,
        project: str,
        issue_types: list[dict[str, Any]] | None = None,
        statuses: list[dict[str, Any]] | None = None,
        priorities: list[dict[str, Any]] | None = None,
    ) -> ProjectConfig:
        """Replace sections of a project configuration.

        Existing issues are not migrated; a workflow may drop a status that
        issues still hold.
        """
        config = self.backend.get_project_config(project) or ProjectConfig(project=project)
        if issue_types is not None:
            config.issue_types = [IssueType.from_dict(t) for t in issue_types]
            if config.issue_types and not any(t.is_default for t in config.issue_types):
                first = config.issue_types[0]
                config.issue_types[0] = IssueType(
                    first.name, first.display_name, first.workflow, first.description, True, first.is_active
                )
        if statuses is not None:
            config.statuses = [Status.from_dict(s) for s in statuses]
        if priorities is not None:
            config.priorities = [Priority.from_dict(p) for p in priorities]
        self.backend.save_project_config(config)
        logger.info("Project config updated", project=project)
        return config

    # -- Issues ---------------------------------------------------------------

    def create_issue(
        self,
        project: str,
        title: str,
        type: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        description: str = "",
        **fields: Any,
    ) -> dict[str, Any]:
        """Create an issue with a sequential ``<PROJECT>-<n>`` key."""
        if not title or not title.strip():
            raise ValidationError("Issue title is required")
        issue_type = type or self._default_type(project)
        self.registry.validate_issue_type(project, issue_type)
        priority = priority or self.registry.default_priority(project)
        self.registry.validate_priority(project, priority)

        issue = Issue(
            id=self.backend.new_id(),
            key=self._next_key(project),
            title=title.strip(),
            project=project,
            type=issue_type,
            status=status or self.registry.default_status_for(project, issue_type),
            description=description,
            priority=priority,
            fields=fields,
        )
        self.validator.require_transition(issue, issue.status)
        self.backend.save_issue(issue)
        logger.info("Issue created", issue_id=issue.id, key=issue.key, type=issue.type, status=issue.status)
        return issue.to_dict()

    def get_issue(self, issue_id: str) -> dict[str, Any]:
        return self.backend.get_issue(issue_id).to_dict()

    def list_issues(
        self,
        project: str | None = None,
        filters: dict[str, str] | None = None,
        sort_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        issues = self.backend.list_issues(project=project, filters=filters, sort_by=sort_by, limit=limit)
        return [issue.to_dict() for issue in issues]

    def update_issue(self, issue_id: str, **changes: Any) -> dict[str, Any]:
        """Apply a partial update, validating type and status before saving.

        Raises:
            IllegalTransition: The resulting status is not in the type's workflow
            InvalidRelationship: Retyping an issue with children to ``subtask``
            ValidationError: Unknown type/priority or a relationship field
        """
        blocked = RELATIONSHIP_FIELDS.intersection(changes)
        if blocked:
            raise ValidationError(f"Relationship fields cannot be updated directly: {', '.join(sorted(blocked))}")

        issue = self.backend.get_issue(issue_id)
        new_type = changes.pop("type", None)
        new_status = changes.pop("status", None)
        new_priority = changes.pop("priority", None)

        if new_type is not None and new_type != issue.type:
            self.registry.validate_issue_type(issue.project, new_type)
            if new_type == SUBTASK_TYPE and issue.children:
                raise InvalidRelationship(f"{issue.key} has children and cannot become a subtask")
            result = self.validator.can_retype(issue, new_type, new_status)
            if not result.allowed:
                raise IllegalTransition(result)
            issue.type = new_type
        elif new_status is not None:
            result = self.validator.require_transition(issue, new_status)
            if result.noop:
                logger.debug("Status unchanged", issue_id=issue_id, status=new_status)
        if new_status is not None:
            issue.status = new_status

        if new_priority is not None:
            self.registry.validate_priority(issue.project, new_priority)
            issue.priority = new_priority
        if "title" in changes:
            title = changes.pop("title")
            if not title or not str(title).strip():
                raise ValidationError("Issue title is required")
            issue.title = str(title).strip()
        if "description" in changes:
            issue.description = changes.pop("description") or ""
        issue.fields.update(changes)

        self.backend.save_issue(issue)
        logger.info("Issue updated", issue_id=issue_id, key=issue.key, status=issue.status, type=issue.type)
        return issue.to_dict()

    def move_issue(self, issue_id: str, status: str) -> dict[str, Any]:
        """Change an issue's status, as a board drop does."""
        issue = self.backend.get_issue(issue_id)
        result = self.validator.require_transition(issue, status)
        if result.noop:
            return issue.to_dict()
        previous = issue.status
        issue.status = status
        self.backend.save_issue(issue)
        logger.info("Issue moved", issue_id=issue_id, key=issue.key, from_status=previous, to_status=status)
        return issue.to_dict()

    def delete_issue(self, issue_id: str) -> None:
        self.graph.delete_issue(issue_id)

    # -- Relationships --------------------------------------------------------

    def link(
        self,
        issue_id: str,
        target_issue_id: str,
        link_type: str = "relates_to",
        parent_child: str | None = None,
        reparent: bool = False,
    ) -> dict[str, Any]:
        return self.graph.link(issue_id, target_issue_id, link_type, parent_child, reparent).to_dict()

    def unlink(self, issue_id: str, target_issue_id: str) -> dict[str, Any]:
        return self.graph.unlink(issue_id, target_issue_id).to_dict()

    def hierarchy(self, issue_id: str) -> dict[str, Any]:
        return self.graph.hierarchy(issue_id).to_dict()

    def create_subtask(self, title: str, parent_issue_id: str, **fields: Any) -> dict[str, Any]:
        return self.graph.create_subtask(title, parent_issue_id, **fields).to_dict()

    # -- Board ----------------------------------------------------------------

    def board(self, project: str) -> dict[str, Any]:
        """Project the board for a project, with column metadata."""
        config = self.backend.get_project_config(project)
        issues = self.backend.list_issues(project=project)
        columns = self.board_projector.project(issues, config)
        statuses = {status.name: status for status in self.board_projector.columns(config)}
        result = []
        for name, cards in columns.items():
            status = statuses.get(name) or Status.synthesize(name)
            result.append(
                {
                    "status": name,
                    "display_name": status.display_name,
                    "color": status.color,
                    "issues": [issue.to_dict() for issue in cards],
                }
            )
        return {"project": project, "using_defaults": config is None, "columns": result}

    def drop_targets(self, issue_id: str) -> list[str]:
        issue = self.backend.get_issue(issue_id)
        return self.board_projector.drop_targets(issue, self.backend.get_project_config(issue.project))

    # -- Internals ------------------------------------------------------------

    def _default_type(self, project: str) -> str:
        types = self.registry.issue_types(project)
        for issue_type in types:
            if issue_type.is_default:
                return issue_type.name
        return types[0].name if types else "task"

    def _next_key(self, project: str) -> str:
        prefix = f"{project.upper()}-"
        highest = FIRST_ISSUE_NUMBER - 1
        for issue in self.backend.list_issues(project=project):
            suffix = issue.key[len(prefix) :] if issue.key.startswith(prefix) else ""
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1}"


def error_response(error: IssueManagerError) -> tuple[int, dict[str, Any]]:
    """Translate an engine error into a status code and response body."""
    body: dict[str, Any] = {"error": type(error).__name__, "message": error.message}
    if isinstance(error, IllegalTransition):
        body["valid_statuses"] = list(error.result.valid_statuses)
    return error.status_code, body
