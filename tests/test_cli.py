"""Tests for CLI commands against an in-memory service."""

from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from issue_manager import cli, link_commands, workflow_commands
from issue_manager.backends.memory import MemoryBackend
from issue_manager.backends.yaml_store import YamlBackend
from issue_manager.exceptions import ConfigurationError, InvalidRelationship
from issue_manager.service import IssueService


@pytest.fixture
def service(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[IssueService]:
    """Route every command to one in-memory service, isolated from real settings."""
    cli.configure_logging("critical")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    service = IssueService(MemoryBackend())
    monkeypatch.setattr("issue_manager.cli.get_service", lambda: service)
    yield service
    structlog.reset_defaults()


def test_parse_fields() -> None:
    """Test key=value parsing ignores malformed items."""
    assert cli.parse_fields("team=core, estimate = 3,broken") == {"team": "core", "estimate": "3"}


def test_create_and_read(service: IssueService, capsys: pytest.CaptureFixture[str]) -> None:
    """Test creating an issue in the default project and reading it back."""
    cli.create("Login page", type="story", fields="team=web")
    issue = service.list_issues("PROJ")[0]
    assert "Created issue PROJ-1001" in capsys.readouterr().out

    cli.read(issue["id"])
    out = capsys.readouterr().out
    assert "Title: Login page" in out
    assert "Type: story" in out
    assert "team: web" in out


def test_update_and_move(service: IssueService, capsys: pytest.CaptureFixture[str]) -> None:
    """Test update and move persist through the service."""
    issue = service.create_issue("PROJ", "Task")
    cli.update(issue["id"], title="Renamed", status="development")
    cli.move(issue["id"], "released")

    assert service.get_issue(issue["id"])["title"] == "Renamed"
    assert service.get_issue(issue["id"])["status"] == "released"
    assert "Moved PROJ-1001 to released" in capsys.readouterr().out


def test_list_and_board(service: IssueService, capsys: pytest.CaptureFixture[str]) -> None:
    """Test listing and board output."""
    parent = service.create_issue("PROJ", "Parent")
    service.create_subtask("Child", parent["id"])

    cli.list_issues()
    out = capsys.readouterr().out
    assert "Found 2 issue(s)" in out
    assert "↳ PROJ-1001-1 [subtask/backlog] Child" in out

    cli.board()
    out = capsys.readouterr().out
    assert "Backlog (2)" in out
    assert "Released (0)" in out


def test_link_commands(service: IssueService, capsys: pytest.CaptureFixture[str]) -> None:
    """Test link add, tree and remove."""
    a = service.create_issue("PROJ", "A")
    b = service.create_issue("PROJ", "B")
    c = service.create_issue("PROJ", "C")

    link_commands.add(a["id"], b["id"], c["id"], type="blocks")
    link_commands.tree(b["id"])
    out = capsys.readouterr().out
    assert "Added 2 link(s)" in out
    assert "is blocked by PROJ-1001 A" in out

    link_commands.remove(a["id"], b["id"])
    assert service.hierarchy(b["id"])["linked"] == []


def test_link_parent_errors_propagate(service: IssueService) -> None:
    """Test invalid relationships surface as engine errors."""
    a = service.create_issue("PROJ", "A")
    with pytest.raises(InvalidRelationship):
        link_commands.add(a["id"], a["id"], parent_child="parent")


def test_cycle_command(service: IssueService, capsys: pytest.CaptureFixture[str]) -> None:
    """Test the cycle report on a clean store."""
    link_commands.cycle()
    assert "No cycles found" in capsys.readouterr().out


def test_workflow_commands(service: IssueService, capsys: pytest.CaptureFixture[str]) -> None:
    """Test workflow inspection commands."""
    issue = service.create_issue("PROJ", "Task")

    workflow_commands.statuses("task")
    out = capsys.readouterr().out
    assert "backlog: Backlog (default)" in out
    assert "released: Released (final)" in out

    workflow_commands.check(issue["id"], "archived")
    assert "Not allowed: task cannot transition to archived" in capsys.readouterr().out

    workflow_commands.check(issue["id"], "acceptance")
    assert "Allowed" in capsys.readouterr().out

    workflow_commands.targets(issue["id"])
    assert capsys.readouterr().out.strip() == "analysis_ready, development, acceptance, released"

    workflow_commands.init()
    assert service.project_config("PROJ")["using_defaults"] is False


def test_get_backend_from_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Test the backend is chosen from the settings file."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    assert isinstance(cli.get_backend(), YamlBackend)

    cli.get_config().set("backend", "memory")
    assert isinstance(cli.get_backend(), MemoryBackend)

    cli.get_config().set("backend", "postgres")
    with pytest.raises(ConfigurationError, match="postgres"):
        cli.get_backend()
