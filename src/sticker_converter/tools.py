"""Resolved table of external codec commands."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .config import ToolSettings
from .errors import ResourceError

logger = logging.getLogger(__name__)


class ToolTable:
    """Maps tool names used by stage descriptors to concrete command prefixes."""

    def __init__(self, commands: Mapping[str, Sequence[str]]) -> None:
        self._commands: Dict[str, Tuple[str, ...]] = {}
        for name, command in commands.items():
            if isinstance(command, str):
                command = [command]
            if not command:
                raise ValueError(f"Empty command configured for tool '{name}'")
            self._commands[name] = tuple(str(part) for part in command)

    @classmethod
    def from_settings(cls, settings: ToolSettings) -> "ToolTable":
        return cls(settings.model_dump())

    def command(self, name: str) -> Tuple[str, ...]:
        if name not in self._commands:
            raise KeyError(f"No command configured for tool '{name}'")
        return self._commands[name]

    def names(self) -> List[str]:
        return sorted(self._commands)

    def with_overrides(self, **commands: Sequence[str]) -> "ToolTable":
        merged: Dict[str, Sequence[str]] = dict(self._commands)
        merged.update(commands)
        return ToolTable(merged)


def _is_available(executable: str) -> bool:
    if shutil.which(executable) is not None:
        return True
    return Path(executable).is_file()


def missing_tools(tools: ToolTable, names: Iterable[str] | None = None) -> List[str]:
    missing = []
    for name in names or tools.names():
        executable = tools.command(name)[0]
        if not _is_available(executable):
            missing.append(f"{name} ({executable})")
    return missing


def check_tools(tools: ToolTable, names: Iterable[str] | None = None) -> None:
    """Fail fast when a configured codec cannot be located."""

    selected = list(names) if names else tools.names()
    missing = missing_tools(tools, selected)
    if missing:
        logger.error("Missing external tools: %s", ", ".join(missing))
        raise ResourceError(f"Required tools not found: {', '.join(missing)}")
    logger.info("All external tools available: %s", ", ".join(selected))
