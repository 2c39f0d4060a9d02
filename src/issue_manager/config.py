"""Settings for the issue manager CLI, stored as YAML."""

from pathlib import Path
from typing import Any

import structlog
import yaml

from issue_manager.exceptions import ConfigurationError

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".issue-manager"
CONFIG_FILE_NAME = "config.yaml"
STORE_FILE_NAME = "store.yaml"

DEFAULT_SETTINGS: dict[str, str] = {
    "backend": "yaml",
    "project": "PROJ",
}


class Config:
    """Settings manager with local (repository) and global (user) scopes.

    Local settings live in ``.issue-manager/config.yaml`` under the working
    directory, global ones in ``~/.issue-manager/config.yaml``. Reads check
    local, then global, then the built-in defaults.
    """

    def __init__(
        self,
        use_global: bool = False,
        config_dir: Path | None = None,
        global_dir: Path | None = None,
    ) -> None:
        """Initialize settings manager.

        Args:
            use_global: Read and write the global scope only
            config_dir: Directory of the scope being managed (overrides the default location)
            global_dir: Directory of the global scope used as fallback
        """
        self.global_dir = Path(global_dir) if global_dir is not None else Path.home() / CONFIG_DIR_NAME
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif use_global:
            self.config_dir = self.global_dir
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
        self.is_global = use_global
        self.config_file = self.config_dir / CONFIG_FILE_NAME

        self._config: dict[str, Any] = self._read(self.config_file)
        self._global_config: dict[str, Any] = {}
        if not self.is_global:
            global_file = self.global_dir / CONFIG_FILE_NAME
            if global_file != self.config_file and global_file.exists():
                try:
                    self._global_config = self._read(global_file)
                except ConfigurationError as e:
                    logger.warning("Ignoring unreadable global config", error=e.message)

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        if not path.exists():
            logger.debug("Config file does not exist", path=str(path))
            return {}
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to load config", path=str(path), error=str(e))
            raise ConfigurationError(f"Failed to load config from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    def _save(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error("Failed to save config", error=str(e))
            raise ConfigurationError(f"Failed to save config to {self.config_file}: {e}") from e
        logger.debug("Config saved", config_file=str(self.config_file))

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get a setting, falling back from local to global to built-in defaults."""
        if key in self._config:
            return self._config[key]
        if not self.is_global and key in self._global_config:
            return self._global_config[key]
        if default is not None:
            return default
        return DEFAULT_SETTINGS.get(key)

    def set(self, key: str, value: str) -> None:
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        logger.debug("Unsetting config value", key=key)
        if self._config.pop(key, None) is not None:
            self._save()

    def list(self) -> dict[str, str]:
        """All explicitly set values; local values shadow global ones."""
        if self.is_global:
            return dict(self._config)
        merged = dict(self._global_config)
        merged.update(self._config)
        return merged

    def store_path(self) -> Path:
        """Location of the YAML issue store."""
        configured = self.get("store.path")
        if configured:
            return Path(configured).expanduser()
        return self.config_dir / STORE_FILE_NAME


def get_config(use_global: bool = False) -> Config:
    return Config(use_global=use_global)
