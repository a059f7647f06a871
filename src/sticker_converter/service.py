"""Conversion facade: the single entry point used by the bot's message handlers."""

from __future__ import annotations

import logging
import shutil
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from uuid import uuid4

from .builder import build_pipeline
from .config import Settings, get_settings
from .errors import (
    ConversionError,
    InputTooLargeError,
    InvalidOptionsError,
    ResourceError,
    StageFailedError,
    UnknownFormatError,
)
from .executor import PipelineExecutor
from .formats import detect_kind, read_head, sniff_bytes
from .models import ConversionRequest, InputArtifact, MediaKind, OutputOptions, PipelineResult, coerce_kind
from .monitoring import record_conversion
from .stages.base import StageDescriptor
from .stages.registry import REGISTRY, PipelineRegistry, load_pipelines
from .tools import ToolTable
from .workspace import Workspace, scratch_workspace

logger = logging.getLogger(__name__)

OptionsLike = Union[OutputOptions, Mapping[str, Any], None]
PathLike = Union[str, Path]


class ConversionService:
    """Validates a request, runs its pipeline in a scratch workspace and hands back the artifact."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        tools: ToolTable | None = None,
        registry: PipelineRegistry | None = None,
        executor: PipelineExecutor | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.tools = tools or ToolTable.from_settings(self.settings.tools)
        if registry is None:
            load_pipelines()
            registry = REGISTRY
        self.registry = registry
        self.executor = executor or PipelineExecutor(
            self.tools,
            default_timeout=self.settings.limits.stage_timeout_sec,
            poll_interval=self.settings.limits.poll_interval_sec,
        )

    def resolve_options(self, options: OptionsLike = None) -> OutputOptions:
        if isinstance(options, OutputOptions):
            return options
        return OutputOptions.parse(self.settings.output, **dict(options or {}))

    def convert(
        self,
        data: InputArtifact,
        target: MediaKind | str,
        options: OptionsLike = None,
        *,
        source: MediaKind | str | None = None,
        output_path: PathLike | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PipelineResult:
        source_kind: Optional[MediaKind] = None
        target_label = str(getattr(target, "value", target))
        status = "failed"
        try:
            target_kind = coerce_kind(target, "target")
            if source is not None:
                source_kind = coerce_kind(source, "source")
            opts = self.resolve_options(options)
            explicit_output = self._check_output_path(output_path)
            payload, input_path = self._check_input(data)
            self._check_not_overwriting_input(explicit_output, input_path)
            if source_kind is None:
                source_kind = detect_kind(data=payload, path=input_path)
            stages = build_pipeline(source_kind, target_kind, opts, self.registry)

            destination = explicit_output or self._default_destination(input_path, target_kind)
            result = self._run_with_size_policy(
                stages, source_kind, target_kind, opts, payload, input_path, destination, cancel_event
            )
            status = "success"
            logger.info(
                "Converted %s -> %s: %s (%d bytes)",
                source_kind.value,
                target_kind.value,
                result.output_path,
                result.output_path.stat().st_size,
            )
            return result
        except ConversionError as exc:
            status = exc.code
            logger.warning("Conversion to %s failed: %s", target_label, exc.detail)
            raise
        finally:
            record_conversion(source_kind.value if source_kind else "unknown", target_label, status)

    def convert_request(self, request: ConversionRequest, cancel_event: threading.Event | None = None) -> PipelineResult:
        return self.convert(
            request.data,
            request.target,
            request.options,
            source=request.source,
            output_path=request.output_path,
            cancel_event=cancel_event,
        )

    def convert_batch(
        self,
        requests: Sequence[ConversionRequest],
        max_workers: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> List[Union[PipelineResult, ConversionError]]:
        """Run independent requests concurrently, bounded by ``max_workers``.

        Results keep the order of ``requests``; conversion failures are returned
        in place of a result rather than raised.
        """

        workers = max_workers or self.settings.limits.max_concurrent_jobs
        results: Dict[int, Union[PipelineResult, ConversionError]] = {}
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self.convert_request, request, cancel_event): index
                for index, request in enumerate(requests)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except ConversionError as exc:
                    results[index] = exc
        return [results[index] for index in range(len(requests))]

    def _check_output_path(self, output_path: PathLike | None) -> Optional[Path]:
        if output_path is None:
            return None
        if not str(output_path).strip():
            raise InvalidOptionsError("Output path must not be empty")
        return Path(output_path)

    @staticmethod
    def _check_not_overwriting_input(output_path: Optional[Path], input_path: Optional[Path]) -> None:
        if output_path is None or input_path is None:
            return
        if output_path.resolve() == input_path.resolve():
            raise InvalidOptionsError(f"Output path must differ from the input path: {output_path}")

    def _check_input(self, data: InputArtifact) -> Tuple[Optional[bytes], Optional[Path]]:
        limit = self.settings.limits.max_input_bytes
        if isinstance(data, (bytes, bytearray)):
            payload = bytes(data)
            if not payload:
                raise UnknownFormatError("Input is empty")
            if len(payload) > limit:
                raise InputTooLargeError(f"Input is {len(payload)} bytes, limit is {limit}")
            return payload, None

        path = Path(data)
        if not path.is_file():
            raise InvalidOptionsError(f"Input file not found: {path}")
        size = path.stat().st_size
        if size > limit:
            raise InputTooLargeError(f"Input is {size} bytes, limit is {limit}")
        return None, path

    def _default_destination(self, input_path: Optional[Path], target: MediaKind) -> Path:
        if input_path is not None:
            return Path(f"{input_path}.{target.extension}")
        return Path(self.settings.workspace.output_dir) / f"{uuid4().hex}.{target.extension}"

    def _run_with_size_policy(
        self,
        stages: Tuple[StageDescriptor, ...],
        source: MediaKind,
        target: MediaKind,
        options: OutputOptions,
        payload: Optional[bytes],
        input_path: Optional[Path],
        destination: Path,
        cancel_event: threading.Event | None,
    ) -> PipelineResult:
        limits = self.settings.limits
        if target is not MediaKind.VIDEO_STICKER or options.lossless or not limits.lossless_first:
            return self._run_once(stages, target, options, payload, input_path, destination, cancel_event)

        lossless = options.model_copy(update={"lossless": True})
        result = self._run_once(
            build_pipeline(source, target, lossless, self.registry),
            target, lossless, payload, input_path, destination, cancel_event,
        )
        size = result.output_path.stat().st_size
        if size <= limits.max_video_sticker_bytes:
            return result

        logger.info("Lossless video sticker is %d bytes (limit %d), encoding lossy", size, limits.max_video_sticker_bytes)
        try:
            return self._run_once(stages, target, options, payload, input_path, destination, cancel_event)
        except BaseException:
            destination.unlink(missing_ok=True)
            raise

    def _run_once(
        self,
        stages: Tuple[StageDescriptor, ...],
        target: MediaKind,
        options: OutputOptions,
        payload: Optional[bytes],
        input_path: Optional[Path],
        destination: Path,
        cancel_event: threading.Event | None,
    ) -> PipelineResult:
        """Run one pipeline attempt in a fresh workspace and move the artifact out before release."""

        with scratch_workspace(self.settings.workspace.scratch_root) as workspace:
            staged = self._stage_input(workspace, stages[0].name, payload, input_path)
            result = self.executor.run(stages, workspace, staged, options, cancel_event)
            self._verify_output(result, stages[-1], target)
            self._deliver(result.output_path, destination)
        return PipelineResult(output_path=destination, diagnostics=result.diagnostics, kind=target)

    @staticmethod
    def _stage_input(
        workspace: Workspace, first_stage: str, payload: Optional[bytes], input_path: Optional[Path]
    ) -> Path:
        suffix = input_path.suffix if input_path is not None and input_path.suffix else ".bin"
        staged = workspace.path_for(f"input{suffix}")
        try:
            if payload is not None:
                staged.write_bytes(payload)
            else:
                shutil.copyfile(input_path, staged)
        except OSError as exc:
            raise ResourceError(f"Unable to stage input for '{first_stage}': {exc}") from exc
        return staged

    @staticmethod
    def _verify_output(result: PipelineResult, last_stage: StageDescriptor, target: MediaKind) -> None:
        # magic bytes only; stage outputs always carry the target extension
        actual = sniff_bytes(read_head(result.output_path))
        if actual is not target:
            label = actual.value if actual else "unrecognized data"
            history = result.diagnostics
            raise StageFailedError(
                last_stage.name,
                f"produced {label} instead of {target.value}",
                history[-1] if history else None,
                history,
            )

    @staticmethod
    def _deliver(artifact: Path, destination: Path) -> None:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(artifact), destination)
        except OSError as exc:
            raise ResourceError(f"Unable to deliver artifact to {destination}: {exc}") from exc


@lru_cache
def get_service() -> ConversionService:
    return ConversionService(get_settings())


def convert(
    data: InputArtifact,
    target: MediaKind | str,
    options: OptionsLike = None,
    **kwargs: Any,
) -> PipelineResult:
    """Convert ``data`` to ``target`` with the process-wide default service."""

    return get_service().convert(data, target, options, **kwargs)
