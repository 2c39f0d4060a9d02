"""Data models for issue manager."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from issue_manager.exceptions import ValidationError


class LinkType(str, Enum):
    """Vocabulary of generic (non-hierarchical) issue links."""

    RELATES_TO = "relates_to"
    BLOCKS = "blocks"
    IS_BLOCKED_BY = "is_blocked_by"
    DUPLICATES = "duplicates"
    IS_DUPLICATED_BY = "is_duplicated_by"

    @property
    def inverse(self) -> "LinkType":
        """Link type as seen from the other end of the edge."""
        return _INVERSE_LINK_TYPES[self]

    @classmethod
    def parse(cls, value: "str | LinkType") -> "LinkType":
        """Parse a link type, accepting dashed and spaced spellings."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        return cls(normalized)


_INVERSE_LINK_TYPES = {
    LinkType.RELATES_TO: LinkType.RELATES_TO,
    LinkType.BLOCKS: LinkType.IS_BLOCKED_BY,
    LinkType.IS_BLOCKED_BY: LinkType.BLOCKS,
    LinkType.DUPLICATES: LinkType.IS_DUPLICATED_BY,
    LinkType.IS_DUPLICATED_BY: LinkType.DUPLICATES,
}


@dataclass(frozen=True)
class IssueRef:
    """Canonical reference to an issue."""

    id: str

    @classmethod
    def coerce(cls, value: Any) -> "IssueRef":
        """Resolve any reference shape to an IssueRef.

        Accepts a bare id, an IssueRef, an Issue, or a mapping carrying
        ``id``/``_id`` (optionally nested under ``issue``).
        """
        if isinstance(value, IssueRef):
            return value
        if isinstance(value, Issue):
            return cls(value.id)
        if isinstance(value, dict):
            if "issue" in value:
                return cls.coerce(value["issue"])
            for key in ("id", "_id"):
                if value.get(key) is not None:
                    return cls(str(value[key]))
            raise ValueError(f"Cannot resolve issue reference from {value!r}")
        if isinstance(value, (str, int)) and str(value):
            return cls(str(value))
        raise ValueError(f"Cannot resolve issue reference from {value!r}")


@dataclass
class Issue:
    """Represents an issue with its workflow state and hierarchy fields."""

    id: str
    key: str
    title: str
    project: str
    type: str = "task"
    status: str = "backlog"
    description: str = ""
    priority: str = "medium"
    parent: IssueRef | None = None
    children: list[IssueRef] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def child_ids(self) -> list[str]:
        return [child.id for child in self.children]

    def to_dict(self) -> dict[str, Any]:
        """Serialize the issue to plain data."""
        return {
            "id": self.id,
            "key": self.key,
            "title": self.title,
            "project": self.project,
            "type": self.type,
            "status": self.status,
            "description": self.description,
            "priority": self.priority,
            "parent": self.parent.id if self.parent else None,
            "children": self.child_ids,
            "fields": dict(self.fields),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Issue":
        """Build an issue from plain data, coercing relationship references."""
        parent = data.get("parent")
        return cls(
            id=str(data["id"]),
            key=data.get("key", ""),
            title=data.get("title", ""),
            project=data.get("project", ""),
            type=data.get("type", "task"),
            status=data.get("status", "backlog"),
            description=data.get("description") or "",
            priority=data.get("priority", "medium"),
            parent=IssueRef.coerce(parent) if parent else None,
            children=[IssueRef.coerce(child) for child in data.get("children") or []],
            fields=dict(data.get("fields") or {}),
        )


@dataclass
class Link:
    """Represents a stored link between issues."""

    source_id: str
    target_id: str
    link_type: LinkType = LinkType.RELATES_TO

    def involves(self, issue_id: str) -> bool:
        return issue_id in (self.source_id, self.target_id)

    def connects(self, first_id: str, second_id: str) -> bool:
        """Check whether the link joins the two issues in either direction."""
        return {self.source_id, self.target_id} == {first_id, second_id}

    def other_end(self, issue_id: str) -> str:
        return self.target_id if issue_id == self.source_id else self.source_id

    def type_from(self, issue_id: str) -> LinkType:
        """Link type from the perspective of ``issue_id``."""
        return self.link_type if issue_id == self.source_id else self.link_type.inverse


def _require_name(data: dict[str, Any], kind: str) -> str:
    name = data.get("name") if isinstance(data, dict) else None
    if not name or not str(name).strip():
        raise ValidationError(f"{kind} name is required")
    return str(name).strip()


@dataclass(frozen=True)
class Status:
    """A workflow status definition."""

    name: str
    display_name: str = ""
    color: str = "default"
    is_final: bool = False
    is_default: bool = False
    is_active: bool = True
    order: int = 0

    @classmethod
    def synthesize(cls, name: str) -> "Status":
        """Build a placeholder status for a name with no definition."""
        return cls(name=name, display_name=name.replace("_", " ").title())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Status":
        name = _require_name(data, "Status")
        return cls(
            name=name,
            display_name=data.get("display_name") or name.replace("_", " ").title(),
            color=data.get("color", "default"),
            is_final=bool(data.get("is_final", False)),
            is_default=bool(data.get("is_default", False)),
            is_active=bool(data.get("is_active", True)),
            order=int(data.get("order", 0)),
        )


@dataclass(frozen=True)
class IssueType:
    """An issue type with its ordered workflow of status names."""

    name: str
    display_name: str = ""
    workflow: tuple[str, ...] = ()
    description: str = ""
    is_default: bool = False
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IssueType":
        name = _require_name(data, "Issue type")
        workflow = data.get("workflow") or ()
        if isinstance(workflow, str):
            workflow = [s.strip() for s in workflow.split(",") if s.strip()]
        return cls(
            name=name,
            display_name=data.get("display_name") or name.title(),
            workflow=tuple(workflow),
            description=data.get("description", ""),
            is_default=bool(data.get("is_default", False)),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass(frozen=True)
class Priority:
    """An issue priority."""

    name: str
    display_name: str = ""
    level: int = 0
    is_default: bool = False
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Priority":
        name = _require_name(data, "Priority")
        return cls(
            name=name,
            display_name=data.get("display_name") or name.title(),
            level=int(data.get("level", 0)),
            is_default=bool(data.get("is_default", False)),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass
class ProjectConfig:
    """Per-project issue types, statuses and priorities."""

    project: str
    issue_types: list[IssueType] = field(default_factory=list)
    statuses: list[Status] = field(default_factory=list)
    priorities: list[Priority] = field(default_factory=list)

    def get_issue_type(self, name: str) -> IssueType | None:
        for issue_type in self.issue_types:
            if issue_type.name == name:
                return issue_type
        return None

    def get_status(self, name: str) -> Status | None:
        for status in self.statuses:
            if status.name == name:
                return status
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project,
            "issue_types": [
                {
                    "name": t.name,
                    "display_name": t.display_name,
                    "workflow": list(t.workflow),
                    "description": t.description,
                    "is_default": t.is_default,
                    "is_active": t.is_active,
                }
                for t in self.issue_types
            ],
            "statuses": [
                {
                    "name": s.name,
                    "display_name": s.display_name,
                    "color": s.color,
                    "is_final": s.is_final,
                    "is_default": s.is_default,
                    "is_active": s.is_active,
                    "order": s.order,
                }
                for s in self.statuses
            ],
            "priorities": [
                {
                    "name": p.name,
                    "display_name": p.display_name,
                    "level": p.level,
                    "is_default": p.is_default,
                    "is_active": p.is_active,
                }
                for p in self.priorities
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectConfig":
        return cls(
            project=str(data["project"]),
            issue_types=[IssueType.from_dict(t) for t in data.get("issue_types") or []],
            statuses=[Status.from_dict(s) for s in data.get("statuses") or []],
            priorities=[Priority.from_dict(p) for p in data.get("priorities") or []],
        )


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a status transition check."""

    allowed: bool
    reason: str | None = None
    noop: bool = False
    valid_statuses: tuple[str, ...] = ()


@dataclass
class LinkedIssue:
    """A linked issue seen from the perspective of the queried issue."""

    issue: Issue
    link_type: LinkType


@dataclass
class Hierarchy:
    """Parent, children and linked view for a single issue."""

    issue: Issue
    parent: Issue | None = None
    children: list[Issue] = field(default_factory=list)
    linked: list[LinkedIssue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "parent": _summary(self.parent) if self.parent else None,
            "children": [_summary(child) for child in self.children],
            "linked": [{"issue": _summary(item.issue), "link_type": item.link_type.value} for item in self.linked],
        }


def _summary(issue: Issue) -> dict[str, Any]:
    return {"id": issue.id, "key": issue.key, "title": issue.title, "type": issue.type, "status": issue.status}
