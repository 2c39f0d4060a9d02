"""Board projection: status columns and drop targets."""

import structlog

from issue_manager.models import Issue, ProjectConfig, Status
from issue_manager.workflow import TransitionValidator

logger = structlog.get_logger()


class BoardProjector:
    """Groups issues into status columns.

    Stateless. Moving a card optimistically and rolling back on a failed
    save is left to the caller.
    """

    def __init__(self, validator: TransitionValidator) -> None:
        self.validator = validator
        self.registry = validator.registry

    def columns(self, config: ProjectConfig | None) -> list[Status]:
        """Board columns: project statuses by order, then remaining default statuses."""
        return self.registry.known_statuses(config)

    def project(self, issues: list[Issue], config: ProjectConfig | None) -> dict[str, list[Issue]]:
        """Bucket issues by status.

        Every known status gets a column, empty or not. Issues whose status
        is not known to the project get trailing columns of their own so they
        stay visible.
        """
        board: dict[str, list[Issue]] = {status.name: [] for status in self.columns(config)}
        stray: dict[str, list[Issue]] = {}
        for issue in issues:
            if issue.status in board:
                board[issue.status].append(issue)
            else:
                stray.setdefault(issue.status, []).append(issue)

        if stray:
            logger.warning("Issues with unknown statuses on board", statuses=sorted(stray))
            board.update(stray)
        logger.debug("Board projected", columns=len(board), issues=len(issues))
        return board

    def is_valid_drop_target(self, issue: Issue, status: str) -> bool:
        """Whether dropping the issue on a status column is a legal transition."""
        return self.validator.can_transition(issue, status).allowed

    def drop_targets(self, issue: Issue, config: ProjectConfig | None = None) -> list[str]:
        """Columns the issue may legally be dropped on, in board order."""
        names = [status.name for status in self.columns(config)]
        valid = self.registry.status_names_for(issue.project, issue.type)
        names.extend(name for name in valid if name not in names)
        return [name for name in names if name != issue.status and name in valid]
