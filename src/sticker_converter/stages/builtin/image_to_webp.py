"""Static image -> WebP image sticker via FFmpeg's libwebp encoder."""

from __future__ import annotations

from typing import Tuple

from ...models import MediaKind, OutputOptions
from ..base import ArtifactSpec, StageDescriptor
from ..registry import REGISTRY

OUTPUT_WEBP = "sticker.webp"


def build_chain(options: OutputOptions) -> Tuple[StageDescriptor, ...]:
    return (
        StageDescriptor(
            name="recompress-image",
            program="ffmpeg",
            args=(
                "-hide_banner",
                "-y",
                "-i", "{input}",
                "-vf", "scale=w={width}:h={height}:force_original_aspect_ratio=decrease:flags=lanczos",
                "-frames:v", "1",
                "-c:v", "libwebp",
                "-quality", "{quality}",
                "-f", "webp",
                "{output}",
            ),
            output=ArtifactSpec(OUTPUT_WEBP),
        ),
    )


REGISTRY.register(MediaKind.STATIC_IMAGE, MediaKind.STATIC_IMAGE, build_chain)
