"""Backend implementations."""

from issue_manager.backends.memory import MemoryBackend
from issue_manager.backends.yaml_store import YamlBackend

__all__ = ["MemoryBackend", "YamlBackend"]
