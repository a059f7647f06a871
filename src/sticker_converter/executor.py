"""Pipeline executor: runs stage descriptors as external processes inside a workspace."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from contextlib import ExitStack
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ConversionCancelledError, StageFailedError, StageTimeoutError
from .models import OutputOptions, PipelineResult, StageDiagnostics
from .monitoring import observe_stage
from .stages.base import CONSUMES_FILE, StageDescriptor
from .tools import ToolTable
from .workspace import Workspace

logger = logging.getLogger(__name__)

DEFAULT_STAGE_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 0.2
DIAGNOSTIC_TAIL = 2000


def _decode(raw: Optional[bytes]) -> str:
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def _tail(text: str, limit: int = DIAGNOSTIC_TAIL) -> str:
    text = text.strip()
    return text if len(text) <= limit else "..." + text[-limit:]


class PipelineExecutor:
    """Executes stages strictly in order, wiring each stage's outputs into the next."""

    def __init__(
        self,
        tools: ToolTable,
        *,
        default_timeout: float = DEFAULT_STAGE_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.tools = tools
        self.default_timeout = default_timeout
        self.poll_interval = poll_interval

    def run(
        self,
        stages: Sequence[StageDescriptor],
        workspace: Workspace,
        input_artifact: Path,
        options: OutputOptions | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PipelineResult:
        if not stages:
            raise ValueError("Cannot run an empty pipeline")

        base_context = (options or OutputOptions()).template_values()
        base_context["workspace"] = str(workspace.path)
        inputs: List[Path] = [Path(input_artifact)]
        history: List[StageDiagnostics] = []

        for stage in stages:
            if cancel_event is not None and cancel_event.is_set():
                raise ConversionCancelledError(f"Cancelled before stage '{stage.name}'")
            if stage.consumes == CONSUMES_FILE and len(inputs) != 1:
                raise StageFailedError(
                    stage.name, f"expects a single input artifact, got {len(inputs)}", history=history
                )

            diagnostics = self._run_stage(stage, workspace, inputs, base_context, cancel_event, history)
            history.append(diagnostics)

            outputs = stage.output.resolve(workspace.path)
            if not outputs:
                raise StageFailedError(
                    stage.name,
                    f"produced no output matching '{stage.output.pattern}'",
                    diagnostics,
                    history,
                )
            if not stage.output.is_glob and outputs[0].stat().st_size == 0:
                raise StageFailedError(stage.name, f"produced an empty '{stage.output.pattern}'", diagnostics, history)
            logger.debug("Stage %s produced %d artifact(s)", stage.name, len(outputs))
            inputs = outputs

        if len(inputs) != 1:
            raise StageFailedError(stages[-1].name, f"left {len(inputs)} artifacts instead of one", history[-1], history)
        return PipelineResult(output_path=inputs[0], diagnostics=tuple(history))

    def _stage_context(self, stage: StageDescriptor, workspace: Workspace, base: Dict[str, str]) -> Dict[str, str]:
        target = stage.output.target(workspace.path)
        if stage.output.is_glob:
            target.mkdir(parents=True, exist_ok=True)
            output_dir = target
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            output_dir = target.parent
        context = dict(base)
        context["output"] = str(target)
        context["output_dir"] = str(output_dir)
        return context

    def _run_stage(
        self,
        stage: StageDescriptor,
        workspace: Workspace,
        inputs: Sequence[Path],
        base_context: Dict[str, str],
        cancel_event: threading.Event | None,
        history: Sequence[StageDiagnostics],
    ) -> StageDiagnostics:
        context = self._stage_context(stage, workspace, base_context)
        argv = [*self.tools.command(stage.program), *stage.render(context, inputs)]
        timeout = stage.timeout or self.default_timeout
        logger.debug("Running stage %s: %s", stage.name, " ".join(argv))

        started = time.monotonic()
        with ExitStack() as stack:
            stdout_target = (
                stack.enter_context(open(context["output"], "wb")) if stage.capture_stdout else subprocess.PIPE
            )
            try:
                proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=stdout_target,
                    stderr=subprocess.PIPE,
                    cwd=str(workspace.path),
                    start_new_session=os.name == "posix",
                )
            except OSError as exc:
                diagnostics = StageDiagnostics(stage=stage.name, argv=tuple(argv), returncode=None, stderr=str(exc))
                raise StageFailedError(stage.name, f"could not start '{argv[0]}': {exc}", diagnostics, history) from exc
            # closes the pipes on every exit path, including cancellation
            stack.enter_context(proc)

            stdout, stderr, timed_out = self._wait(proc, stage, timeout, cancel_event)

        duration = time.monotonic() - started
        observe_stage(stage.name, duration)
        diagnostics = StageDiagnostics(
            stage=stage.name,
            argv=tuple(argv),
            returncode=proc.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            duration=duration,
        )

        if timed_out:
            logger.warning("Stage %s timed out after %.1fs", stage.name, timeout)
            raise StageTimeoutError(stage.name, f"timed out after {timeout:g}s", diagnostics, history)
        if proc.returncode != 0:
            logger.warning("Stage %s failed with exit code %s: %s", stage.name, proc.returncode, _tail(diagnostics.stderr, 200))
            message = f"exited with status {proc.returncode}"
            output = _tail(diagnostics.stderr or diagnostics.stdout)
            if output:
                message = f"{message}: {output}"
            raise StageFailedError(stage.name, message, diagnostics, history)

        logger.debug("Stage %s diagnostics: %s", stage.name, _tail(diagnostics.summary(), 500))
        logger.info("Stage %s finished in %.2fs", stage.name, duration)
        return diagnostics

    def _wait(
        self,
        proc: subprocess.Popen,
        stage: StageDescriptor,
        timeout: float,
        cancel_event: threading.Event | None,
    ) -> Tuple[Optional[bytes], Optional[bytes], bool]:
        deadline = time.monotonic() + timeout
        try:
            while True:
                remaining = deadline - time.monotonic()
                try:
                    stdout, stderr = proc.communicate(timeout=max(0.0, min(self.poll_interval, remaining)))
                    return stdout, stderr, False
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        self._terminate(proc)
                        raise ConversionCancelledError(f"Cancelled during stage '{stage.name}'")
                    if time.monotonic() >= deadline:
                        self._terminate(proc)
                        stdout, stderr = proc.communicate()
                        return stdout, stderr, True
        except BaseException:
            self._terminate(proc)
            raise

    @staticmethod
    def _terminate(proc: subprocess.Popen) -> None:
        if proc.poll() is not None:
            return
        try:
            if os.name == "posix":
                os.killpg(proc.pid, signal.SIGKILL)
            else:  # pragma: no cover - non-posix fallback
                proc.kill()
        except ProcessLookupError:
            pass
        proc.wait()
