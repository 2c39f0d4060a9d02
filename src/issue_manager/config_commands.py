"""Settings commands for issue manager CLI."""

from cyclopts import App

from issue_manager.config import DEFAULT_SETTINGS, get_config

config_app = App(name="config", help="Manage CLI settings (backend, store.path, project)")


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a setting.

    Args:
        key: Setting key, e.g. backend, store.path or project
        value: Setting value
        global_: Write to the user-level settings instead of the repository ones
    """
    get_config(use_global=global_).set(key, value)
    print(f"Set {key} = {value} ({_scope(global_)})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a setting from one scope."""
    get_config(use_global=global_).unset(key)
    print(f"Unset {key} ({_scope(global_)})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Show the effective value of a setting."""
    value = get_config(use_global=global_).get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {value}")


@config_app.command(name="list")
def list_config(global_: bool = False, defaults: bool = False) -> None:
    """List settings.

    Args:
        global_: Only list user-level settings
        defaults: Include built-in defaults that are not overridden
    """
    settings = get_config(use_global=global_).list()
    if defaults:
        settings = {**DEFAULT_SETTINGS, **settings}

    if not settings:
        print(f"No {_scope(global_)} settings")
        return

    for key, value in settings.items():
        print(f"{key} = {value}")


@config_app.command
def store() -> None:
    """Show where issues are stored."""
    print(get_config().store_path())
