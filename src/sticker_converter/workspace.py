"""Per-job scratch directories with guaranteed cleanup."""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .errors import ResourceError

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "job-"


class Workspace:
    """A uniquely named directory owned by exactly one conversion request."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._released = False

    @classmethod
    def acquire(cls, root: str | Path) -> "Workspace":
        root_path = Path(root)
        try:
            root_path.mkdir(parents=True, exist_ok=True)
            path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=root_path))
        except OSError as exc:
            raise ResourceError(f"Unable to allocate workspace under {root_path}: {exc}") from exc
        logger.debug("Workspace acquired: %s", path)
        return cls(path)

    @property
    def released(self) -> bool:
        return self._released

    def path_for(self, relative: str | Path) -> Path:
        """Resolve a path inside the workspace, rejecting anything outside it."""

        candidate = (self.path / relative).resolve()
        root = self.path.resolve()
        if candidate != root and root not in candidate.parents:
            raise ValueError(f"Path escapes workspace: {relative}")
        return candidate

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        shutil.rmtree(self.path, ignore_errors=True)
        logger.debug("Workspace released: %s", self.path)

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Workspace({str(self.path)!r}, released={self._released})"


@contextmanager
def scratch_workspace(root: str | Path) -> Iterator[Workspace]:
    """Acquire a workspace and release it on every exit path."""

    workspace = Workspace.acquire(root)
    try:
        yield workspace
    finally:
        workspace.release()
