"""Built-in default issue types, statuses and priorities.

These apply to any project without its own configuration and act as the
base layer beneath project overrides. The table is read-only; consumers
receive it through :class:`Defaults` rather than copying the lists.
"""

from dataclasses import dataclass
from types import MappingProxyType

from issue_manager.models import IssueType, Priority, ProjectConfig, Status

SUBTASK_TYPE = "subtask"

DEFAULT_WORKFLOW: tuple[str, ...] = ("backlog", "analysis_ready", "development", "acceptance", "released")

DEFAULT_STATUSES: tuple[Status, ...] = (
    Status("backlog", "Backlog", color="#ECEFF1", is_default=True, order=1),
    Status("analysis_ready", "Analysis Ready", color="#E3F2FD", order=2),
    Status("development", "Development", color="#FFF3E0", order=3),
    Status("acceptance", "Acceptance", color="#F3E5F5", order=4),
    Status("released", "Released", color="#E0F7FA", is_final=True, order=5),
)

DEFAULT_ISSUE_TYPES: tuple[IssueType, ...] = (
    IssueType("task", "Task", DEFAULT_WORKFLOW, "A general task or work item", is_default=True),
    IssueType("bug", "Bug", DEFAULT_WORKFLOW, "A defect that needs to be fixed"),
    IssueType("story", "Story", DEFAULT_WORKFLOW, "A user story or feature request"),
    IssueType(SUBTASK_TYPE, "Subtask", DEFAULT_WORKFLOW, "A child work item of another issue"),
    IssueType("epic", "Epic", DEFAULT_WORKFLOW, "A large body of work grouping other issues"),
)

DEFAULT_PRIORITIES: tuple[Priority, ...] = (
    Priority("low", "Low", level=1),
    Priority("medium", "Medium", level=2, is_default=True),
    Priority("high", "High", level=3),
    Priority("critical", "Critical", level=4),
)


@dataclass(frozen=True)
class Defaults:
    """Read-only default table injected into the workflow registry."""

    workflow: tuple[str, ...] = DEFAULT_WORKFLOW
    statuses: tuple[Status, ...] = DEFAULT_STATUSES
    issue_types: tuple[IssueType, ...] = DEFAULT_ISSUE_TYPES
    priorities: tuple[Priority, ...] = DEFAULT_PRIORITIES

    @property
    def statuses_by_name(self) -> MappingProxyType:
        return MappingProxyType({status.name: status for status in self.statuses})

    def seed_config(self, project: str) -> ProjectConfig:
        """Build a starter project configuration from the defaults."""
        return ProjectConfig(
            project=project,
            issue_types=list(self.issue_types),
            statuses=list(self.statuses),
            priorities=list(self.priorities),
        )


DEFAULTS = Defaults()
