"""Declarative descriptions of external codec invocations."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

CONSUMES_FILE = "file"
CONSUMES_FRAMES = "frames"

INPUTS_TOKEN = "{inputs}"
_GLOB_CHARS = frozenset("*?[")
_NUMERIC_SUFFIX = re.compile(r"(\d+)(?!.*\d)")


@dataclass(frozen=True)
class ArtifactSpec:
    """Workspace-relative location of a stage output: one file or a glob of frames."""

    pattern: str

    @property
    def is_glob(self) -> bool:
        return any(char in _GLOB_CHARS for char in self.pattern)

    @property
    def directory(self) -> PurePosixPath:
        return PurePosixPath(self.pattern).parent

    def target(self, root: Path) -> Path:
        """Path substituted for ``{output}``: the file itself or, for globs, its directory."""

        if self.is_glob:
            return root / self.directory
        return root / self.pattern

    def resolve(self, root: Path) -> List[Path]:
        if self.is_glob:
            return sort_frames(path for path in root.glob(self.pattern) if path.is_file())
        path = root / self.pattern
        return [path] if path.is_file() else []


@dataclass(frozen=True)
class StageDescriptor:
    name: str
    program: str
    args: Tuple[str, ...]
    output: ArtifactSpec
    consumes: str = CONSUMES_FILE
    capture_stdout: bool = False
    timeout: Optional[float] = None
    params: Mapping[str, str] = field(default_factory=dict)
    index: int = 0

    def render(self, context: Mapping[str, str], inputs: Sequence[Path]) -> List[str]:
        """Materialize the argument template for a concrete set of input artifacts."""

        values = dict(context)
        values.update(self.params)
        values["input"] = str(inputs[0]) if inputs else ""
        return render_args(self.args, values, inputs)


def render_args(template: Iterable[str], values: Mapping[str, str], inputs: Sequence[Path] = ()) -> List[str]:
    argv: List[str] = []
    for token in template:
        if token == INPUTS_TOKEN:
            argv.extend(str(path) for path in inputs)
            continue
        argv.append(token.format_map(values))
    return argv


def frame_sort_key(path: Path) -> Tuple[int, int, str]:
    match = _NUMERIC_SUFFIX.search(path.stem)
    if match is None:
        return (1, 0, path.name)
    return (0, int(match.group(1)), path.name)


def sort_frames(paths: Iterable[Path]) -> List[Path]:
    """Order frame files by the trailing number in their stem, then by name.

    Rasterizers zero-pad frame numbers, so lexical and numeric order agree in
    practice; this keeps playback order correct when they do not.
    """

    return sorted(paths, key=frame_sort_key)
