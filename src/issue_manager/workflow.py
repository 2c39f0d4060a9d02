"""Workflow resolution and status transition checks."""

from typing import Protocol

import structlog

from issue_manager.defaults import DEFAULTS, Defaults
from issue_manager.exceptions import IllegalTransition, ValidationError
from issue_manager.models import Issue, IssueType, Priority, ProjectConfig, Status, TransitionResult

logger = structlog.get_logger()


class ConfigProvider(Protocol):
    """Anything able to look up a project's configuration."""

    def get_project_config(self, project: str) -> ProjectConfig | None: ...


class WorkflowRegistry:
    """Resolves the ordered statuses legal for an issue type within a project.

    Project configuration is an override layer over the injected default
    table. Resolution never fails: unknown types and projects without
    configuration fall back to the default workflow, and workflow entries
    without a status definition get a synthesized one.
    """

    def __init__(self, config_provider: ConfigProvider, defaults: Defaults = DEFAULTS) -> None:
        self.config_provider = config_provider
        self.defaults = defaults

    def project_config(self, project_id: str) -> ProjectConfig | None:
        return self.config_provider.get_project_config(project_id)

    def statuses_for(self, project_id: str, issue_type: str) -> list[Status]:
        """Return the ordered statuses for an issue type.

        Args:
            project_id: Project the issue belongs to
            issue_type: Issue type name

        Returns:
            Ordered list of statuses; the default workflow when the project
            has no workflow for the type
        """
        config = self.project_config(project_id)
        configured_type = config.get_issue_type(issue_type) if config else None
        if config is None or configured_type is None or not configured_type.workflow:
            logger.debug("Using default workflow", project=project_id, issue_type=issue_type)
            return [self._resolve_status(None, name) for name in self.defaults.workflow]

        return [self._resolve_status(config, name) for name in configured_type.workflow]

    def status_names_for(self, project_id: str, issue_type: str) -> list[str]:
        return [status.name for status in self.statuses_for(project_id, issue_type)]

    def _resolve_status(self, config: ProjectConfig | None, name: str) -> Status:
        if config is not None:
            status = config.get_status(name)
            if status is not None:
                return status
        status = self.defaults.statuses_by_name.get(name)
        if status is not None:
            return status
        logger.debug("Synthesizing undefined status", status=name)
        return Status.synthesize(name)

    def known_statuses(self, config: ProjectConfig | None) -> list[Status]:
        """Ordered union of active project statuses and default statuses.

        A project status marked inactive also hides the default of the same name.
        """
        statuses: list[Status] = []
        seen: set[str] = {s.name for s in config.statuses if not s.is_active} if config else set()
        project_statuses = sorted((s for s in config.statuses if s.is_active), key=lambda s: s.order) if config else []
        for status in [*project_statuses, *self.defaults.statuses]:
            if status.name not in seen:
                seen.add(status.name)
                statuses.append(status)
        return statuses

    def issue_types(self, project_id: str) -> list[IssueType]:
        """Active issue types for a project, or the default types."""
        config = self.project_config(project_id)
        if config is None or not config.issue_types:
            return list(self.defaults.issue_types)
        return [issue_type for issue_type in config.issue_types if issue_type.is_active]

    def get_issue_type(self, project_id: str, name: str) -> IssueType | None:
        for issue_type in self.issue_types(project_id):
            if issue_type.name == name:
                return issue_type
        return None

    def default_status_for(self, project_id: str, issue_type: str) -> str:
        """Status assigned to new issues: the workflow member marked default, else the first."""
        statuses = self.statuses_for(project_id, issue_type)
        for status in statuses:
            if status.is_default:
                return status.name
        return statuses[0].name if statuses else self.defaults.workflow[0]

    def priorities(self, project_id: str) -> list[Priority]:
        config = self.project_config(project_id)
        if config is None or not config.priorities:
            return list(self.defaults.priorities)
        return [priority for priority in config.priorities if priority.is_active]

    def default_priority(self, project_id: str) -> str:
        priorities = self.priorities(project_id)
        for priority in priorities:
            if priority.is_default:
                return priority.name
        return priorities[0].name if priorities else "medium"

    def validate_issue_type(self, project_id: str, name: str) -> None:
        """Raise ValidationError unless ``name`` is an active issue type of the project."""
        if self.get_issue_type(project_id, name) is None:
            available = ", ".join(t.name for t in self.issue_types(project_id))
            raise ValidationError(f"Invalid issue type '{name}'. Available types: {available}")

    def validate_priority(self, project_id: str, name: str) -> None:
        names = [p.name for p in self.priorities(project_id)]
        if name not in names:
            raise ValidationError(f"Invalid priority '{name}'. Available priorities: {', '.join(names)}")


class TransitionValidator:
    """Decides whether an issue may move to a status.

    Legality is workflow membership only: any status in the type's workflow
    is reachable from any other in one step. Workflow order is used for
    display and is not enforced as a sequence.
    """

    def __init__(self, registry: WorkflowRegistry) -> None:
        self.registry = registry

    def can_transition(self, issue: Issue, proposed_status: str) -> TransitionResult:
        """Check a proposed status for an issue.

        Args:
            issue: Issue being moved
            proposed_status: Target status name

        Returns:
            TransitionResult; ``noop`` is set when the status would not change
        """
        return self._check(issue.project, issue.type, issue.status, proposed_status)

    def can_retype(self, issue: Issue, new_type: str, status: str | None = None) -> TransitionResult:
        """Check that an issue's (possibly new) status fits the workflow of a new type."""
        target = status if status is not None else issue.status
        result = self._check(issue.project, new_type, issue.status, target)
        return TransitionResult(
            allowed=result.allowed,
            reason=result.reason,
            noop=result.noop and new_type == issue.type,
            valid_statuses=result.valid_statuses,
        )

    def _check(self, project_id: str, issue_type: str, current: str, proposed: str) -> TransitionResult:
        valid = tuple(self.registry.status_names_for(project_id, issue_type))
        if proposed in valid:
            return TransitionResult(allowed=True, noop=proposed == current, valid_statuses=valid)

        reason = f"{issue_type} cannot transition to {proposed}; valid statuses: {', '.join(valid)}"
        logger.debug("Transition rejected", project=project_id, issue_type=issue_type, status=proposed)
        return TransitionResult(allowed=False, reason=reason, valid_statuses=valid)

    def require_transition(self, issue: Issue, proposed_status: str) -> TransitionResult:
        """Like can_transition, but raise IllegalTransition when not allowed."""
        result = self.can_transition(issue, proposed_status)
        if not result.allowed:
            raise IllegalTransition(result)
        return result

    def valid_targets(self, issue: Issue) -> list[str]:
        """Statuses the issue may move to, excluding its current one."""
        return [name for name in self.registry.status_names_for(issue.project, issue.type) if name != issue.status]
