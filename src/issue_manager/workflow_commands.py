"""Workflow commands for issue manager CLI."""

from cyclopts import App

workflow_app = App(name="workflow", help="Inspect issue types, statuses and transitions")


@workflow_app.command
def statuses(issue_type: str, project: str | None = None) -> None:
    """List the workflow statuses of an issue type, in display order."""
    from issue_manager.cli import get_service, resolve_project

    service = get_service()
    for status in service.registry.statuses_for(resolve_project(project), issue_type):
        final_marker = " (final)" if status.is_final else ""
        default_marker = " (default)" if status.is_default else ""
        print(f"{status.name}: {status.display_name}{default_marker}{final_marker}")


@workflow_app.command
def types(project: str | None = None) -> None:
    """List active issue types and their workflows."""
    from issue_manager.cli import get_service, resolve_project

    service = get_service()
    project_id = resolve_project(project)
    for issue_type in service.registry.issue_types(project_id):
        workflow = " -> ".join(service.registry.status_names_for(project_id, issue_type.name))
        print(f"{issue_type.name} ({issue_type.display_name}): {workflow}")


@workflow_app.command
def check(issue_id: str, status: str) -> None:
    """Check whether an issue may move to a status."""
    from issue_manager.cli import get_service

    service = get_service()
    issue = service.backend.get_issue(issue_id)
    result = service.validator.can_transition(issue, status)

    if not result.allowed:
        print(f"Not allowed: {result.reason}")
    elif result.noop:
        print(f"{issue.key} is already in {status}")
    else:
        print(f"Allowed: {issue.key} can move from {issue.status} to {status}")


@workflow_app.command
def targets(issue_id: str) -> None:
    """List the statuses an issue can be dropped on."""
    from issue_manager.cli import get_service

    service = get_service()
    print(", ".join(service.drop_targets(issue_id)))


@workflow_app.command
def init(project: str | None = None) -> None:
    """Write a project configuration seeded from the default workflow."""
    from issue_manager.cli import get_service, resolve_project

    service = get_service()
    project_id = resolve_project(project)
    service.init_project_config(project_id)
    print(f"Initialized workflow configuration for {project_id}")
