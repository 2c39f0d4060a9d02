"""Exception hierarchy for issue manager.

Exception Hierarchy:
    IssueManagerError (base)
    ├── InvalidRelationship
    ├── IllegalTransition
    ├── NotFound
    ├── ValidationError
    └── ConfigurationError

Every error is recoverable by the caller. ``status_code`` carries the
HTTP-equivalent a request layer should answer with.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from issue_manager.models import TransitionResult


class IssueManagerError(Exception):
    """Base exception for all issue manager errors.

    Attributes:
        message: Human-readable error description
        status_code: HTTP-equivalent status for the request layer
    """

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidRelationship(IssueManagerError):
    """A link or hierarchy change would break graph integrity.

    Examples:
        - Linking an issue to itself
        - A parent chain that loops back on itself
        - Giving children to a subtask
        - A second parent without explicit reparenting
    """


class IllegalTransition(IssueManagerError):
    """A status is not part of the issue type's workflow."""

    status_code = 422

    def __init__(self, result: "TransitionResult") -> None:
        self.result = result
        super().__init__(result.reason or "Illegal status transition")


class NotFound(IssueManagerError):
    """A referenced issue or project configuration does not exist."""

    status_code = 404


class ValidationError(IssueManagerError):
    """Invalid input such as an unknown issue type or priority."""


class ConfigurationError(IssueManagerError):
    """Settings or store files are missing or malformed."""
