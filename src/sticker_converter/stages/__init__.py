"""Stage descriptors and the pipeline registry."""

from __future__ import annotations

from .base import ArtifactSpec, StageDescriptor, sort_frames
from .registry import DEFAULT_PIPELINE_MODULES, REGISTRY, PipelineRegistry, load_pipelines

__all__ = [
    "ArtifactSpec",
    "StageDescriptor",
    "sort_frames",
    "REGISTRY",
    "DEFAULT_PIPELINE_MODULES",
    "PipelineRegistry",
    "load_pipelines",
]
