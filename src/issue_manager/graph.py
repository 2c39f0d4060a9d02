"""Parent/child and link graph management for issues.

All writes to ``Issue.parent``, ``Issue.children`` and link records go
through :class:`RelationshipGraph`. Every mutating call reads and validates
everything it needs before the first write, so a rejected call leaves the
store untouched.
"""

import structlog

from issue_manager.backend import Backend
from issue_manager.defaults import SUBTASK_TYPE
from issue_manager.exceptions import IllegalTransition, InvalidRelationship, ValidationError
from issue_manager.models import Hierarchy, Issue, IssueRef, Link, LinkedIssue, LinkType
from issue_manager.workflow import TransitionValidator

logger = structlog.get_logger()

PARENT = "parent"
CHILD = "child"


class RelationshipGraph:
    """Enforces hierarchy and link invariants and performs the mutations."""

    def __init__(self, backend: Backend, validator: TransitionValidator) -> None:
        self.backend = backend
        self.validator = validator
        self.registry = validator.registry

    # -- Mutations -----------------------------------------------------------

    def link(
        self,
        issue_id: str,
        target_id: str,
        link_type: str | LinkType = LinkType.RELATES_TO,
        parent_child: str | None = None,
        reparent: bool = False,
    ) -> Hierarchy:
        """Link two issues.

        Args:
            issue_id: Issue the link is made from
            target_id: Other issue
            link_type: Generic link type, used when ``parent_child`` is omitted
            parent_child: ``"parent"`` makes the target the parent of the issue,
                ``"child"`` makes the target a child of the issue
            reparent: Allow replacing an existing, different parent

        Returns:
            Hierarchy view of ``issue_id`` after the change

        Raises:
            InvalidRelationship: Self-link, cycle, subtask parent, second parent
            NotFound: Either issue does not exist
        """
        if issue_id == target_id:
            raise InvalidRelationship(f"Issue {issue_id} cannot be linked to itself")

        issue = self.backend.get_issue(issue_id)
        target = self.backend.get_issue(target_id)

        if parent_child is None:
            self._link_generic(issue, target, self._parse_link_type(link_type))
        elif parent_child == PARENT:
            self._attach(child=issue, parent=target, reparent=reparent)
        elif parent_child == CHILD:
            self._attach(child=target, parent=issue, reparent=reparent)
        else:
            raise InvalidRelationship(f"Unknown parent_child value '{parent_child}'; expected 'parent' or 'child'")

        logger.info(
            "Issues linked",
            issue_id=issue_id,
            target_id=target_id,
            link_type=getattr(link_type, "value", link_type),
            parent_child=parent_child,
        )
        return self.hierarchy(issue_id)

    def reparent(self, issue_id: str, new_parent_id: str | None) -> Hierarchy:
        """Move an issue under a new parent, or detach it when ``new_parent_id`` is None."""
        issue = self.backend.get_issue(issue_id)
        if new_parent_id is None:
            self._detach(issue)
        else:
            if new_parent_id == issue_id:
                raise InvalidRelationship(f"Issue {issue_id} cannot be its own parent")
            parent = self.backend.get_issue(new_parent_id)
            self._attach(child=issue, parent=parent, reparent=True)
        logger.info("Issue reparented", issue_id=issue_id, parent_id=new_parent_id)
        return self.hierarchy(issue_id)

    def unlink(self, issue_id: str, target_id: str) -> Hierarchy:
        """Remove every relationship between two issues, in either direction.

        Unlinking issues that are not related is a no-op. A target that no
        longer exists still has its dangling references cleared from the issue.
        """
        issue = self.backend.get_issue(issue_id)
        target = self.backend.find_issue(target_id)

        issue_changed = False
        if issue.parent is not None and issue.parent.id == target_id:
            issue.parent = None
            issue_changed = True
        if target_id in issue.child_ids:
            issue.children = [child for child in issue.children if child.id != target_id]
            issue_changed = True

        target_changed = False
        if target is not None:
            if target.parent is not None and target.parent.id == issue_id:
                target.parent = None
                target_changed = True
            if issue_id in target.child_ids:
                target.children = [child for child in target.children if child.id != issue_id]
                target_changed = True

        if issue_changed:
            self.backend.save_issue(issue)
        if target is not None and target_changed:
            self.backend.save_issue(target)
        removed = self.backend.remove_links(issue_id, target_id)

        logger.info(
            "Issues unlinked",
            issue_id=issue_id,
            target_id=target_id,
            hierarchy_changed=issue_changed or target_changed,
            links_removed=removed,
        )
        return self.hierarchy(issue_id)

    def create_subtask(self, title: str, parent_issue_id: str, **fields) -> Issue:
        """Create a subtask under an existing issue.

        Args:
            title: Subtask title
            parent_issue_id: Issue the subtask belongs to
            **fields: ``description``, ``priority``, ``status`` and custom fields

        Raises:
            InvalidRelationship: The parent is itself a subtask
            IllegalTransition: An explicit status outside the subtask workflow
            ValidationError: Empty title, inactive subtask type or unknown priority
        """
        if not title or not title.strip():
            raise ValidationError("Subtask title is required")

        parent = self.backend.get_issue(parent_issue_id)
        if parent.type == SUBTASK_TYPE:
            raise InvalidRelationship(f"Cannot create a subtask under {parent.key}: subtasks cannot have children")

        self.registry.validate_issue_type(parent.project, SUBTASK_TYPE)
        description = fields.pop("description", "") or ""
        priority = fields.pop("priority", None) or self.registry.default_priority(parent.project)
        self.registry.validate_priority(parent.project, priority)
        status = fields.pop("status", None) or self.registry.default_status_for(parent.project, SUBTASK_TYPE)

        subtask = Issue(
            id=self.backend.new_id(),
            key=self._next_subtask_key(parent),
            title=title.strip(),
            project=parent.project,
            type=SUBTASK_TYPE,
            status=status,
            description=description,
            priority=priority,
            parent=IssueRef(parent.id),
            fields=fields,
        )
        result = self.validator.can_transition(subtask, status)
        if not result.allowed:
            raise IllegalTransition(result)

        self.backend.save_issue(subtask)
        parent.children.append(IssueRef(subtask.id))
        self.backend.save_issue(parent)

        logger.info("Subtask created", issue_id=subtask.id, key=subtask.key, parent_id=parent.id)
        return subtask

    def delete_issue(self, issue_id: str) -> None:
        """Delete an issue, orphaning its children and dropping its links."""
        issue = self.backend.get_issue(issue_id)

        children: dict[str, Issue] = {}
        for ref in issue.children:
            child = self.backend.find_issue(ref.id)
            if child is not None:
                children[child.id] = child
        for child in self.backend.list_issues(filters={"parent": issue_id}):
            children.setdefault(child.id, child)
        parent = self.backend.find_issue(issue.parent.id) if issue.parent else None
        linked_ids = {link.other_end(issue_id) for link in self.backend.list_links(issue_id)}

        for child in children.values():
            if child.parent is not None and child.parent.id == issue_id:
                child.parent = None
                self.backend.save_issue(child)
        if parent is not None and issue_id in parent.child_ids:
            parent.children = [ref for ref in parent.children if ref.id != issue_id]
            self.backend.save_issue(parent)
        for other_id in linked_ids:
            self.backend.remove_links(issue_id, other_id)
        self.backend.delete_issue(issue_id)

        logger.info(
            "Issue deleted",
            issue_id=issue_id,
            key=issue.key,
            orphaned=sorted(children),
            links_removed=len(linked_ids),
        )

    # -- Queries -------------------------------------------------------------

    def hierarchy(self, issue_id: str) -> Hierarchy:
        """Compose the parent, children and linked views of an issue.

        Linked entries are expressed from this issue's perspective: an
        incoming ``blocks`` record reads as ``is_blocked_by``.
        """
        issue = self.backend.get_issue(issue_id)

        parent = None
        if issue.parent is not None:
            parent = self.backend.find_issue(issue.parent.id)
            if parent is None:
                logger.warning("Dangling parent reference", issue_id=issue_id, parent_id=issue.parent.id)

        children = []
        for ref in issue.children:
            child = self.backend.find_issue(ref.id)
            if child is None:
                logger.warning("Dangling child reference", issue_id=issue_id, child_id=ref.id)
                continue
            children.append(child)

        linked = []
        for link in self.backend.list_links(issue_id):
            other = self.backend.find_issue(link.other_end(issue_id))
            if other is None:
                logger.warning("Dangling link", issue_id=issue_id, other_id=link.other_end(issue_id))
                continue
            linked.append(LinkedIssue(issue=other, link_type=link.type_from(issue_id)))

        return Hierarchy(issue=issue, parent=parent, children=children, linked=linked)

    def ancestors(self, issue_id: str) -> list[Issue]:
        """Walk up the parent chain, nearest ancestor first."""
        chain: list[Issue] = []
        seen = {issue_id}
        current = self.backend.get_issue(issue_id)
        while current.parent is not None and current.parent.id not in seen:
            parent = self.backend.find_issue(current.parent.id)
            if parent is None:
                break
            chain.append(parent)
            seen.add(parent.id)
            current = parent
        return chain

    def find_cycles(self, project: str | None = None) -> list[list[str]]:
        """Find parent cycles already present in stored data."""
        issues = {issue.id: issue for issue in self.backend.list_issues(project=project)}
        cycles: list[list[str]] = []
        reported: set[frozenset[str]] = set()

        for start in issues:
            path: list[str] = []
            position: dict[str, int] = {}
            current: str | None = start
            while current in issues and current not in position:
                position[current] = len(path)
                path.append(current)
                parent = issues[current].parent
                current = parent.id if parent else None
            if current is not None and current in position:
                cycle = path[position[current] :]
                if frozenset(cycle) not in reported:
                    reported.add(frozenset(cycle))
                    cycles.append(cycle)

        if cycles:
            logger.warning("Parent cycles found", count=len(cycles))
        return cycles

    # -- Internals -----------------------------------------------------------

    @staticmethod
    def _parse_link_type(link_type: str | LinkType) -> LinkType:
        try:
            return LinkType.parse(link_type)
        except ValueError as e:
            valid = ", ".join(t.value for t in LinkType)
            raise InvalidRelationship(f"Unknown link type '{link_type}'; valid link types: {valid}") from e

    def _link_generic(self, issue: Issue, target: Issue, link_type: LinkType) -> None:
        # One record per pair; relinking replaces the previous type and direction.
        self.backend.remove_links(issue.id, target.id)
        self.backend.add_link(Link(source_id=issue.id, target_id=target.id, link_type=link_type))

    def _attach(self, child: Issue, parent: Issue, reparent: bool) -> None:
        if parent.type == SUBTASK_TYPE:
            raise InvalidRelationship(f"{parent.key} is a subtask and cannot have children")

        if child.parent is not None and child.parent.id == parent.id:
            if child.id not in parent.child_ids:
                parent.children.append(IssueRef(child.id))
                self.backend.save_issue(parent)
            return

        if child.parent is not None and not reparent:
            raise InvalidRelationship(
                f"{child.key} already has parent {child.parent.id}; unlink it first or reparent explicitly"
            )

        self._check_no_cycle(child, parent)
        old_parent = self.backend.find_issue(child.parent.id) if child.parent else None

        child.parent = IssueRef(parent.id)
        self.backend.save_issue(child)
        if child.id not in parent.child_ids:
            parent.children.append(IssueRef(child.id))
        self.backend.save_issue(parent)
        if old_parent is not None and child.id in old_parent.child_ids:
            old_parent.children = [ref for ref in old_parent.children if ref.id != child.id]
            self.backend.save_issue(old_parent)

    def _detach(self, child: Issue) -> None:
        if child.parent is None:
            return
        old_parent = self.backend.find_issue(child.parent.id)
        child.parent = None
        self.backend.save_issue(child)
        if old_parent is not None and child.id in old_parent.child_ids:
            old_parent.children = [ref for ref in old_parent.children if ref.id != child.id]
            self.backend.save_issue(old_parent)

    def _check_no_cycle(self, child: Issue, parent: Issue) -> None:
        """Reject the edge if ``child`` appears in the proposed parent's ancestor chain."""
        seen: set[str] = set()
        current: Issue | None = parent
        while current is not None and current.id not in seen:
            if current.id == child.id:
                raise InvalidRelationship(
                    f"Making {parent.key} the parent of {child.key} would create a circular parent chain"
                )
            seen.add(current.id)
            current = self.backend.find_issue(current.parent.id) if current.parent else None

    def _next_subtask_key(self, parent: Issue) -> str:
        prefix = f"{parent.key}-"
        highest = 0
        for issue in self.backend.list_issues(project=parent.project):
            suffix = issue.key[len(prefix) :] if issue.key.startswith(prefix) else ""
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1}"
