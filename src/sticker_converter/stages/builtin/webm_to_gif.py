"""VP9 WebM video sticker -> animated GIF via FFmpeg."""

from __future__ import annotations

from typing import Tuple

from ...models import MediaKind, OutputOptions
from ..base import ArtifactSpec, StageDescriptor
from ..registry import REGISTRY

OUTPUT_GIF = "sticker.gif"


def build_chain(options: OutputOptions) -> Tuple[StageDescriptor, ...]:
    return (
        StageDescriptor(
            name="transcode-webm-to-gif",
            program="ffmpeg",
            args=(
                "-hide_banner",
                "-y",
                # the native vp9 decoder drops the alpha channel
                "-c:v", "libvpx-vp9",
                "-i", "{input}",
                "-vf", "fps={fps},scale=w={width}:h={height}:force_original_aspect_ratio=decrease",
                "-c:v", "gif",
                "-f", "gif",
                "{output}",
            ),
            output=ArtifactSpec(OUTPUT_GIF),
        ),
    )


REGISTRY.register(MediaKind.VIDEO_STICKER, MediaKind.ANIMATED_GIF, build_chain)
