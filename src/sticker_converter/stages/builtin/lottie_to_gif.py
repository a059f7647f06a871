"""Vector animation (gzip-compressed Lottie) -> animated GIF via gunzip, lottie_to_png and gifski."""

from __future__ import annotations

from typing import Tuple

from ...models import MediaKind, OutputOptions
from ..base import CONSUMES_FRAMES, INPUTS_TOKEN, ArtifactSpec, StageDescriptor
from ..registry import REGISTRY

ANIMATION_JSON = "animation.json"
FRAMES_GLOB = "frames/*.png"
OUTPUT_GIF = "animation.gif"


def build_chain(options: OutputOptions) -> Tuple[StageDescriptor, ...]:
    return (
        StageDescriptor(
            name="decompress-archive",
            program="gunzip",
            args=("-c", "{input}"),
            output=ArtifactSpec(ANIMATION_JSON),
            capture_stdout=True,
        ),
        StageDescriptor(
            name="rasterize-frames",
            program="lottie_to_png",
            args=(
                "--width", "{width}",
                "--height", "{height}",
                "--fps", "{fps}",
                "--threads", "{threads}",
                "--output", "{output}",
                "{input}",
            ),
            output=ArtifactSpec(FRAMES_GLOB),
        ),
        StageDescriptor(
            name="encode-gif",
            program="gifski",
            args=(
                "--quiet",
                "-o", "{output}",
                "--fps", "{fps}",
                "--height", "{height}",
                "--width", "{width}",
                "--quality", "{gif_quality}",
                INPUTS_TOKEN,
            ),
            output=ArtifactSpec(OUTPUT_GIF),
            consumes=CONSUMES_FRAMES,
            # gifski only accepts 1-100
            params={"gif_quality": str(max(options.quality, 1))},
        ),
    )


REGISTRY.register(MediaKind.VECTOR_ANIMATION, MediaKind.ANIMATED_GIF, build_chain)
