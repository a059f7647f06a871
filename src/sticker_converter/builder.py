"""Pipeline builder: selects the ordered stage chain for a conversion."""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from .models import MediaKind, OutputOptions
from .stages.base import StageDescriptor
from .stages.registry import REGISTRY, PipelineRegistry, load_pipelines


def build_pipeline(
    source: MediaKind,
    target: MediaKind,
    options: OutputOptions | None = None,
    registry: PipelineRegistry | None = None,
) -> Tuple[StageDescriptor, ...]:
    """Return the stages turning ``source`` into ``target``.

    Raises UnsupportedConversionError for pairs without a registered chain.
    """

    if registry is None:
        registry = REGISTRY
        load_pipelines()
    factory = registry.get(MediaKind(source), MediaKind(target))
    stages = factory(options or OutputOptions())
    return tuple(replace(stage, index=position) for position, stage in enumerate(stages))
