"""Link management commands for issue manager CLI."""

from typing import Literal

from cyclopts import App

link_app = App(name="link", help="Manage links and parent/child relationships between issues")


@link_app.command
def add(
    source_id: str,
    *target_ids: str,
    type: str = "relates_to",
    parent_child: Literal["parent", "child"] | None = None,
    reparent: bool = False,
) -> None:
    """Link a source issue to target issues.

    Args:
        source_id: Issue the links start from
        target_ids: Issues to link to
        type: Link type (relates_to, blocks, is_blocked_by, duplicates, is_duplicated_by)
        parent_child: "parent" makes each target the parent of the source, "child" makes each target a child
        reparent: Allow replacing an existing parent
    """
    from issue_manager.cli import get_service

    service = get_service()
    for target_id in target_ids:
        service.link(source_id, target_id, link_type=type, parent_child=parent_child, reparent=reparent)
    print(f"Added {len(target_ids)} link(s) from {source_id}")


@link_app.command
def remove(source_id: str, *target_ids: str) -> None:
    """Remove all relationships between a source issue and target issues."""
    from issue_manager.cli import get_service

    service = get_service()
    for target_id in target_ids:
        service.unlink(source_id, target_id)
    print(f"Removed links between {source_id} and {len(target_ids)} issue(s)")


@link_app.command
def tree(issue_id: str) -> None:
    """Display the parent, children and linked issues of an issue."""
    from issue_manager.cli import get_service

    service = get_service()
    issue = service.get_issue(issue_id)
    hierarchy = service.hierarchy(issue_id)

    print(f"Issue: {issue['key']} {issue['title']} ({issue['status']})\n")

    if hierarchy["parent"]:
        parent = hierarchy["parent"]
        print("Parent:")
        print(f"  - {parent['key']} {parent['title']}\n")

    if hierarchy["children"]:
        print("Children:")
        for child in hierarchy["children"]:
            print(f"  - {child['key']} {child['title']} ({child['status']})")
        print()

    if hierarchy["linked"]:
        print("Linked:")
        for item in hierarchy["linked"]:
            display_name = item["link_type"].replace("_", " ")
            print(f"  - {display_name} {item['issue']['key']} {item['issue']['title']}")
        print()


@link_app.command
def cycle(project: str | None = None) -> None:
    """Find and display parent cycles in stored issues."""
    from issue_manager.cli import get_service

    service = get_service()
    cycles = service.graph.find_cycles(project)

    if not cycles:
        print("No cycles found")
        return

    print(f"Found {len(cycles)} cycle(s):\n")
    for i, cycle in enumerate(cycles, 1):
        cycle_str = " -> ".join(cycle)
        print(f"{i}. {cycle_str} -> {cycle[0]}")
