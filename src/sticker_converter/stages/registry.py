"""Registry of stage chains keyed by (source kind, target kind)."""

from __future__ import annotations

from importlib import import_module
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from ..errors import UnsupportedConversionError
from ..models import MediaKind, OutputOptions
from .base import StageDescriptor

ChainFactory = Callable[[OutputOptions], Sequence[StageDescriptor]]

DEFAULT_PIPELINE_MODULES: Sequence[str] = (
    "sticker_converter.stages.builtin.lottie_to_gif",
    "sticker_converter.stages.builtin.gif_to_webm",
    "sticker_converter.stages.builtin.webm_to_gif",
    "sticker_converter.stages.builtin.image_to_webp",
)


class PipelineRegistry:
    def __init__(self) -> None:
        self._registry: Dict[Tuple[MediaKind, MediaKind], ChainFactory] = {}

    def register(self, source: MediaKind, target: MediaKind, factory: ChainFactory) -> None:
        key = (MediaKind(source), MediaKind(target))
        if key in self._registry:
            raise ValueError(f"Pipeline already registered for {key[0].value}->{key[1].value}")
        self._registry[key] = factory

    def pipeline(self, source: MediaKind, target: MediaKind) -> Callable[[ChainFactory], ChainFactory]:
        """Decorator form of :meth:`register`."""

        def decorator(factory: ChainFactory) -> ChainFactory:
            self.register(source, target, factory)
            return factory

        return decorator

    def supports(self, source: MediaKind, target: MediaKind) -> bool:
        return (source, target) in self._registry

    def get(self, source: MediaKind, target: MediaKind) -> ChainFactory:
        key = (source, target)
        if key not in self._registry:
            raise UnsupportedConversionError(source, target)
        return self._registry[key]

    def pairs(self) -> List[Tuple[MediaKind, MediaKind]]:
        return list(self._registry)


REGISTRY = PipelineRegistry()


def load_pipelines(module_names: Iterable[str] | None = None) -> None:
    """Import pipeline modules and trigger their registration side-effects."""

    modules = list(module_names or DEFAULT_PIPELINE_MODULES)
    for module in modules:
        import_module(module)


__all__ = [
    "REGISTRY",
    "DEFAULT_PIPELINE_MODULES",
    "ChainFactory",
    "PipelineRegistry",
    "load_pipelines",
]
