"""Issue hierarchy, link and status workflow engine."""

from issue_manager.board import BoardProjector
from issue_manager.graph import RelationshipGraph
from issue_manager.service import IssueService
from issue_manager.workflow import TransitionValidator, WorkflowRegistry

__all__ = ["BoardProjector", "IssueService", "RelationshipGraph", "TransitionValidator", "WorkflowRegistry"]
