"""Tests for the relationship graph manager."""

import pytest

from issue_manager.backends.memory import MemoryBackend
from issue_manager.exceptions import IllegalTransition, InvalidRelationship, NotFound, ValidationError
from issue_manager.graph import RelationshipGraph
from issue_manager.models import Issue, IssueRef, Link, LinkType
from issue_manager.workflow import TransitionValidator, WorkflowRegistry


@pytest.fixture
def backend() -> MemoryBackend:
    """Backend with a story, two tasks, a bug and a subtask."""
    backend = MemoryBackend()
    for issue_id, issue_type in [("A", "task"), ("B", "story"), ("C", "task"), ("D", "bug"), ("S", "subtask")]:
        backend.save_issue(
            Issue(id=issue_id, key=f"WEB-{issue_id}", title=f"Issue {issue_id}", project="WEB", type=issue_type)
        )
    return backend


@pytest.fixture
def graph(backend: MemoryBackend) -> RelationshipGraph:
    return RelationshipGraph(backend, TransitionValidator(WorkflowRegistry(backend)))


@pytest.mark.parametrize("link_type", [t.value for t in LinkType])
@pytest.mark.parametrize("parent_child", [None, "parent", "child"])
def test_self_link_always_rejected(graph: RelationshipGraph, link_type: str, parent_child: str | None) -> None:
    """Test linking an issue to itself fails for every kind of link."""
    with pytest.raises(InvalidRelationship):
        graph.link("A", "A", link_type, parent_child)


def test_link_parent_sets_both_sides(graph: RelationshipGraph) -> None:
    """Test the parent view on the child and the children view on the parent."""
    graph.link("A", "B", parent_child="parent")

    assert graph.hierarchy("A").parent.id == "B"
    assert [child.id for child in graph.hierarchy("B").children] == ["A"]


def test_link_child_inverts_direction(graph: RelationshipGraph) -> None:
    """Test parent_child='child' makes the target a child."""
    view = graph.link("B", "A", parent_child="child")

    assert [child.id for child in view.children] == ["A"]
    assert graph.hierarchy("A").parent.id == "B"


def test_subtask_cannot_become_parent(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test linking under a subtask fails and writes nothing."""
    with pytest.raises(InvalidRelationship, match="subtask"):
        graph.link("A", "S", parent_child="parent")
    with pytest.raises(InvalidRelationship):
        graph.link("S", "A", parent_child="child")

    assert backend.get_issue("A").parent is None
    assert backend.get_issue("S").children == []


def test_subtask_can_be_a_child(graph: RelationshipGraph) -> None:
    """Test subtasks are valid children."""
    graph.link("S", "B", parent_child="parent")
    assert graph.hierarchy("S").parent.id == "B"


def test_second_parent_requires_reparent(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test an issue keeps its single parent unless reparenting is explicit."""
    graph.link("A", "B", parent_child="parent")

    with pytest.raises(InvalidRelationship, match="already has parent"):
        graph.link("A", "C", parent_child="parent")
    assert backend.get_issue("A").parent == IssueRef("B")

    graph.link("A", "C", parent_child="parent", reparent=True)
    assert backend.get_issue("A").parent == IssueRef("C")
    assert backend.get_issue("B").children == []
    assert backend.get_issue("C").children == [IssueRef("A")]


def test_linking_same_parent_twice_is_idempotent(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test repeating a parent link does not duplicate the child."""
    graph.link("A", "B", parent_child="parent")
    graph.link("A", "B", parent_child="parent")
    assert backend.get_issue("B").children == [IssueRef("A")]


def test_cycle_rejected(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test making a descendant the parent of its ancestor fails."""
    graph.link("C", "B", parent_child="parent")
    graph.link("D", "C", parent_child="parent")

    with pytest.raises(InvalidRelationship, match="circular"):
        graph.link("B", "D", parent_child="parent")
    with pytest.raises(InvalidRelationship, match="circular"):
        graph.link("B", "C", parent_child="parent")
    assert backend.get_issue("B").parent is None


def test_cycle_rejected_on_reparent(graph: RelationshipGraph) -> None:
    """Test explicit reparenting still refuses cycles."""
    graph.link("C", "B", parent_child="parent")
    graph.link("B", "A", parent_child="parent")
    with pytest.raises(InvalidRelationship):
        graph.reparent("A", "C")


def test_reparent_and_detach(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test reparent moves and None detaches."""
    graph.link("A", "B", parent_child="parent")
    graph.reparent("A", "C")
    assert backend.get_issue("A").parent == IssueRef("C")
    assert backend.get_issue("B").children == []

    graph.reparent("A", None)
    assert backend.get_issue("A").parent is None
    assert backend.get_issue("C").children == []


def test_missing_issues_raise_not_found(graph: RelationshipGraph) -> None:
    """Test unknown ids are reported as NotFound."""
    with pytest.raises(NotFound):
        graph.link("A", "missing")
    with pytest.raises(NotFound):
        graph.link("missing", "A", parent_child="parent")
    with pytest.raises(NotFound):
        graph.hierarchy("missing")


def test_unknown_link_type_or_direction(graph: RelationshipGraph) -> None:
    """Test values outside the link vocabulary are rejected."""
    with pytest.raises(InvalidRelationship, match="Unknown link type"):
        graph.link("A", "B", "depends_on")
    with pytest.raises(InvalidRelationship, match="parent_child"):
        graph.link("A", "B", parent_child="sibling")


def test_blocks_reads_inverse_from_target(graph: RelationshipGraph) -> None:
    """Test A blocks B shows as is_blocked_by from B."""
    view = graph.link("A", "B", "blocks")
    assert [(item.issue.id, item.link_type) for item in view.linked] == [("B", LinkType.BLOCKS)]

    linked = graph.hierarchy("B").linked
    assert [(item.issue.id, item.link_type) for item in linked] == [("A", LinkType.IS_BLOCKED_BY)]


def test_generic_link_leaves_hierarchy_alone(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test generic links do not touch parent or children."""
    graph.link("A", "B", "duplicates")
    assert backend.get_issue("A").parent is None
    assert backend.get_issue("B").children == []
    assert graph.hierarchy("B").linked[0].link_type is LinkType.IS_DUPLICATED_BY


def test_relinking_pair_replaces_link(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test one generic link per pair, even when relinked from the other end."""
    graph.link("A", "B", "blocks")
    graph.link("B", "A", "relates_to")
    assert len(backend.list_links("A")) == 1
    assert graph.hierarchy("A").linked[0].link_type is LinkType.RELATES_TO


def test_unlink_removes_everything_and_is_idempotent(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test unlink clears hierarchy and links in both directions, twice safely."""
    graph.link("A", "B", parent_child="parent")
    graph.link("B", "A", "blocks")

    first = graph.unlink("B", "A")
    state = (backend.get_issue("A"), backend.get_issue("B"), backend.list_links("A"))
    second = graph.unlink("B", "A")

    assert first.to_dict() == second.to_dict() == {"parent": None, "children": [], "linked": []}
    assert state == (backend.get_issue("A"), backend.get_issue("B"), backend.list_links("A"))
    assert backend.get_issue("A").parent is None


def test_unlink_unrelated_issues_is_noop(graph: RelationshipGraph) -> None:
    """Test unlinking issues that were never linked does not fail."""
    assert graph.unlink("A", "C").to_dict() == {"parent": None, "children": [], "linked": []}


def test_unlink_cleans_dangling_target(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test references to a target that no longer exists are cleared."""
    graph.link("B", "A", parent_child="child")
    backend.delete_issue("A")

    view = graph.unlink("B", "A")
    assert view.children == []
    assert backend.get_issue("B").children == []


def test_hierarchy_skips_dangling_references(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test missing parents, children and link targets do not break the view."""
    issue = backend.get_issue("A")
    issue.parent = IssueRef("gone")
    issue.children = [IssueRef("gone-too"), IssueRef("C")]
    backend.save_issue(issue)
    backend.add_link(Link("A", "vanished", LinkType.RELATES_TO))

    view = graph.hierarchy("A")
    assert view.parent is None
    assert [child.id for child in view.children] == ["C"]
    assert view.linked == []


def test_create_subtask(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test subtasks get type, key, status and both hierarchy sides."""
    subtask = graph.create_subtask("Write tests", "B", description="unit", estimate=2)

    assert subtask.type == "subtask"
    assert subtask.key == "WEB-B-1"
    assert subtask.status == "backlog"
    assert subtask.priority == "medium"
    assert subtask.fields == {"estimate": 2}
    assert subtask.parent == IssueRef("B")
    assert backend.get_issue("B").children == [IssueRef(subtask.id)]

    second = graph.create_subtask("Review", "B")
    assert second.key == "WEB-B-2"


def test_create_subtask_under_subtask_fails(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test nesting subtasks is refused and nothing is written."""
    before = len(backend.list_issues())
    with pytest.raises(InvalidRelationship):
        graph.create_subtask("Nested", "S")
    assert len(backend.list_issues()) == before


def test_create_subtask_validation(graph: RelationshipGraph) -> None:
    """Test empty titles, unknown parents and illegal statuses fail."""
    with pytest.raises(ValidationError):
        graph.create_subtask("  ", "B")
    with pytest.raises(NotFound):
        graph.create_subtask("Orphan", "missing")
    with pytest.raises(IllegalTransition):
        graph.create_subtask("Bad status", "B", status="archived")


def test_delete_orphans_children(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test deleting a parent clears the children's parent instead of deleting them."""
    graph.link("A", "B", parent_child="parent")
    graph.link("C", "B", parent_child="parent")

    graph.delete_issue("B")

    assert backend.find_issue("B") is None
    assert backend.get_issue("A").parent is None
    assert backend.get_issue("C").parent is None


def test_delete_removes_links_and_parent_entry(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test deleting an issue drops its links and its entry in the parent's children."""
    graph.link("A", "B", parent_child="parent")
    graph.link("A", "C", "blocks")
    graph.link("D", "A", "relates_to")

    graph.delete_issue("A")

    assert backend.get_issue("B").children == []
    assert backend.list_links("C") == []
    assert backend.list_links("D") == []


def test_delete_missing_issue(graph: RelationshipGraph) -> None:
    """Test deleting an unknown issue raises NotFound."""
    with pytest.raises(NotFound):
        graph.delete_issue("missing")


def test_ancestors(graph: RelationshipGraph) -> None:
    """Test the ancestor chain, nearest first."""
    graph.link("A", "C", parent_child="parent")
    graph.link("C", "B", parent_child="parent")
    assert [issue.id for issue in graph.ancestors("A")] == ["C", "B"]


def test_find_cycles_in_stored_data(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test cycles written around the graph manager are detected once."""
    assert graph.find_cycles() == []
    for child, parent in [("A", "B"), ("B", "C"), ("C", "A")]:
        issue = backend.get_issue(child)
        issue.parent = IssueRef(parent)
        backend.save_issue(issue)

    cycles = graph.find_cycles("WEB")
    assert len(cycles) == 1
    assert set(cycles[0]) == {"A", "B", "C"}


def test_create_subtask_rejects_unknown_priority(graph: RelationshipGraph, backend: MemoryBackend) -> None:
    """Test a priority the project does not define is refused before any write."""
    with pytest.raises(ValidationError, match="urgent"):
        graph.create_subtask("Part", "B", priority="urgent")
    assert backend.get_issue("B").children == []
