"""Domain models shared by the pipeline builder, executor and facade."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import InvalidOptionsError


class MediaKind(str, Enum):
    STATIC_IMAGE = "static_image"
    ANIMATED_GIF = "animated_gif"
    VIDEO_STICKER = "video_sticker"
    VECTOR_ANIMATION = "vector_animation"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_EXTENSIONS: Dict[MediaKind, str] = {
    MediaKind.STATIC_IMAGE: "webp",
    MediaKind.ANIMATED_GIF: "gif",
    MediaKind.VIDEO_STICKER: "webm",
    MediaKind.VECTOR_ANIMATION: "tgs",
}


class OutputOptions(BaseModel):
    """Tunable output parameters passed through to the codec stages."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    width: int = Field(512, ge=1, description="Output width in pixels")
    height: int = Field(512, ge=1, description="Output height in pixels")
    fps: int = Field(50, ge=1, description="Output frame rate")
    quality: int = Field(90, ge=0, le=100, description="Encoder quality, 0-100")
    threads: int = Field(0, ge=0, description="Rasterizer threads; 0 uses all cores")
    lossless: bool = Field(False, description="Ask the video encoder for lossless output")

    @classmethod
    def parse(cls, value: "OutputOptions | Dict[str, Any] | None" = None, **overrides: Any) -> "OutputOptions":
        """Build options from an optional base plus field overrides."""

        if isinstance(value, OutputOptions) and not overrides:
            return value
        data: Dict[str, Any] = {}
        if isinstance(value, OutputOptions):
            data.update(value.model_dump())
        elif value:
            data.update(value)
        data.update(overrides)
        return cls(**data)

    @model_validator(mode="wrap")
    @classmethod
    def _raise_invalid_options(cls, data: Any, handler: Any) -> "OutputOptions":
        try:
            return handler(data)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise InvalidOptionsError(problems) from exc

    def template_values(self) -> Dict[str, str]:
        return {name: str(value) for name, value in self.model_dump().items()}


InputArtifact = Union[bytes, bytearray, str, Path]


def coerce_kind(value: Any, label: str) -> MediaKind:
    try:
        return MediaKind(value)
    except ValueError as exc:
        choices = ", ".join(kind.value for kind in MediaKind)
        raise InvalidOptionsError(f"Unknown {label} kind '{value}', expected one of: {choices}") from exc


@dataclass
class ConversionRequest:
    data: InputArtifact
    target: MediaKind
    options: OutputOptions = field(default_factory=OutputOptions)
    source: Optional[MediaKind] = None
    output_path: Optional[Path] = None

    def __post_init__(self) -> None:
        self.target = coerce_kind(self.target, "target")
        if self.source is not None:
            self.source = coerce_kind(self.source, "source")
        self.options = OutputOptions.parse(self.options)


@dataclass(frozen=True)
class StageDiagnostics:
    stage: str
    argv: Tuple[str, ...]
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0

    def summary(self) -> str:
        text = (self.stderr or self.stdout).strip()
        return f"[{self.stage}] exit={self.returncode} {text}".rstrip()


@dataclass
class PipelineResult:
    output_path: Path
    diagnostics: Tuple[StageDiagnostics, ...] = ()
    kind: Optional[MediaKind] = None

    def read_bytes(self) -> bytes:
        return self.output_path.read_bytes()
