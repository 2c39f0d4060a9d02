"""CLI for issue manager."""

import sys
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from issue_manager.backend import Backend
from issue_manager.backends import MemoryBackend, YamlBackend
from issue_manager.config import get_config
from issue_manager.config_commands import config_app
from issue_manager.exceptions import ConfigurationError, IssueManagerError
from issue_manager.link_commands import link_app
from issue_manager.service import IssueService
from issue_manager.workflow_commands import workflow_app

logger = structlog.get_logger()

app = App(
    help="Issue Manager - issue hierarchy, links and status workflows",
)

app.command(link_app)
app.command(workflow_app)
app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def get_backend() -> Backend:
    """Get the configured backend."""
    config = get_config()
    backend_type = config.get("backend")

    if backend_type == "yaml":
        return YamlBackend(config.store_path())
    elif backend_type == "memory":
        return MemoryBackend()
    else:
        raise ConfigurationError(f"Unknown backend: {backend_type}")


def get_service() -> IssueService:
    return IssueService(get_backend())


def resolve_project(project: str | None) -> str:
    """Use the explicit project or fall back to the configured default."""
    return project or get_config().get("project") or "PROJ"


def parse_fields(fields: str) -> dict[str, str]:
    """Parse ``key=value,key=value`` into a dict."""
    parsed = {}
    for item in fields.split(","):
        if "=" in item:
            key, value = item.split("=", 1)
            parsed[key.strip()] = value.strip()
    return parsed


def format_issue_line(issue: dict) -> str:
    marker = "↳ " if issue.get("parent") else ""
    return f"{marker}{issue['key']} [{issue['type']}/{issue['status']}] {issue['title']}"


@app.command
def create(
    title: str,
    type: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    description: str = "",
    project: str | None = None,
    fields: str = "",
) -> None:
    """Create a new issue."""
    service = get_service()
    issue = service.create_issue(
        resolve_project(project),
        title,
        type=type,
        status=status,
        priority=priority,
        description=description,
        **parse_fields(fields),
    )
    print(f"Created issue {issue['key']} ({issue['id']}): {issue['title']}")


@app.command
def subtask(parent_id: str, title: str, description: str = "", priority: str | None = None) -> None:
    """Create a subtask under an issue."""
    service = get_service()
    issue = service.create_subtask(title, parent_id, description=description, priority=priority)
    print(f"Created subtask {issue['key']} ({issue['id']}) under {parent_id}")


@app.command
def read(issue_id: str) -> None:
    """Read an issue by ID."""
    service = get_service()
    issue = service.get_issue(issue_id)

    print(f"Issue: {issue['key']} ({issue['id']})")
    print(f"Title: {issue['title']}")
    print(f"Type: {issue['type']}")
    print(f"Status: {issue['status']}")
    print(f"Priority: {issue['priority']}")
    if issue["description"]:
        print(f"Description: {issue['description']}")
    if issue["parent"]:
        print(f"Parent: {issue['parent']}")
    if issue["children"]:
        print(f"Children: {', '.join(issue['children'])}")
    for key, value in issue["fields"].items():
        print(f"{key}: {value}")


@app.command
def update(
    issue_id: str,
    title: str | None = None,
    description: str | None = None,
    type: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    fields: str = "",
) -> None:
    """Update an issue; status and type changes are checked against the workflow."""
    service = get_service()
    changes = {
        name: value
        for name, value in (
            ("title", title),
            ("description", description),
            ("type", type),
            ("status", status),
            ("priority", priority),
        )
        if value is not None
    }
    changes.update(parse_fields(fields))
    issue = service.update_issue(issue_id, **changes)
    print(f"Updated issue {issue['key']}: {issue['title']}")


@app.command
def move(issue_id: str, status: str) -> None:
    """Move an issue to another status."""
    service = get_service()
    issue = service.move_issue(issue_id, status)
    print(f"Moved {issue['key']} to {issue['status']}")


@app.command
def delete(*issue_ids: str) -> None:
    """Delete one or more issues, orphaning their children."""
    service = get_service()
    for issue_id in issue_ids:
        service.delete_issue(issue_id)
    print(f"Deleted {len(issue_ids)} issue(s)")


@app.command(name="list")
def list_issues(
    project: str | None = None,
    filter: str | None = None,
    sort: str | None = None,
    limit: int | None = None,
) -> None:
    """List issues with optional filtering, sorting, and limiting."""
    service = get_service()
    filters = parse_fields(filter) if filter else None
    issues = service.list_issues(resolve_project(project), filters=filters, sort_by=sort, limit=limit)

    print(f"Found {len(issues)} issue(s):\n")
    for issue in issues:
        print(format_issue_line(issue))


@app.command
def board(project: str | None = None) -> None:
    """Show the board for a project, one column per status."""
    service = get_service()
    data = service.board(resolve_project(project))

    for column in data["columns"]:
        print(f"{column['display_name']} ({len(column['issues'])})")
        for issue in column["issues"]:
            print(f"  - {issue['key']} {issue['title']}")
        print()


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    try:
        app(tokens)
    except IssueManagerError as e:
        logger.debug("Command failed", error=type(e).__name__)
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    app.meta()
