"""Animated GIF -> VP9 WebM video sticker via FFmpeg."""

from __future__ import annotations

from typing import Tuple

from ...models import MediaKind, OutputOptions
from ..base import ArtifactSpec, StageDescriptor
from ..registry import REGISTRY

MAX_DURATION_SECONDS = 3
VP9_MAX_CRF = 63
OUTPUT_WEBM = "sticker.webm"


def quality_to_crf(quality: int) -> int:
    """Map 0-100 quality onto libvpx-vp9's 0-63 CRF scale (lower is better)."""

    return round(VP9_MAX_CRF - quality * VP9_MAX_CRF / 100)


def build_chain(options: OutputOptions) -> Tuple[StageDescriptor, ...]:
    args = [
        "-hide_banner",
        "-y",
        "-t", str(MAX_DURATION_SECONDS),
        "-i", "{input}",
        "-vf", "scale=w={width}:h={height}:force_original_aspect_ratio=decrease,fps={fps}",
        "-c:v", "libvpx-vp9",
        "-pix_fmt", "yuva420p",
    ]
    if options.lossless:
        args += ["-lossless", "1"]
    else:
        args += ["-crf", "{crf}", "-b:v", "0"]
    args += ["-f", "webm", "-an", "{output}"]

    return (
        StageDescriptor(
            name="transcode-gif-to-webm",
            program="ffmpeg",
            args=tuple(args),
            output=ArtifactSpec(OUTPUT_WEBM),
            params={"crf": str(quality_to_crf(options.quality))},
        ),
    )


REGISTRY.register(MediaKind.ANIMATED_GIF, MediaKind.VIDEO_STICKER, build_chain)
