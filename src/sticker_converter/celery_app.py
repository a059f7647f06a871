"""Celery application running sticker conversions as independent worker tasks."""

from __future__ import annotations

import base64
import logging
from binascii import Error as BinasciiError
from pathlib import Path
from typing import Any, Dict

from celery import Celery, signals

from .config import Settings, get_settings
from .errors import ConversionError, InvalidOptionsError
from .monitoring import ensure_metrics_server
from .service import ConversionService

logger = logging.getLogger(__name__)


def _create_celery(settings: Settings) -> Celery:
    app = Celery(settings.service_name)
    app.conf.update(
        broker_url=settings.celery.broker_url,
        result_backend=settings.celery.result_backend,
        task_default_queue=settings.celery.default_queue,
        task_time_limit=settings.celery.task_time_limit_sec,
        worker_prefetch_multiplier=settings.celery.prefetch_multiplier,
        worker_concurrency=settings.celery.concurrency,
    )
    return app


SETTINGS = get_settings()
celery_app = _create_celery(SETTINGS)
_SERVICE: ConversionService | None = None


def _get_service() -> ConversionService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = ConversionService(SETTINGS)
    return _SERVICE


def _decode_input(payload: Dict[str, Any]) -> bytes:
    raw_b64 = payload.get("base64_data")
    if not raw_b64:
        raise InvalidOptionsError("base64_data is required")
    try:
        return base64.b64decode(raw_b64, validate=True)
    except (BinasciiError, ValueError) as exc:
        raise InvalidOptionsError("Invalid base64_data payload") from exc


@signals.worker_ready.connect
def _on_worker_ready(sender=None, **kwargs):  # type: ignore[override]
    if SETTINGS.monitoring.enabled:
        ensure_metrics_server(SETTINGS.monitoring.prometheus_port)


@celery_app.task(name="stickers.convert")
def handle_conversion_task(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Convert one base64 payload and return the artifact inline.

    Payload keys: ``base64_data``, ``target_kind``, optional ``source_kind``,
    ``options`` and ``filename``.
    """

    task_id = payload.get("task_id")
    filename = payload.get("filename")
    logger.debug("Starting sticker conversion task %s (%s)", task_id, filename)

    output_path: Path | None = None
    try:
        data = _decode_input(payload)
        result = _get_service().convert(
            data,
            payload.get("target_kind", ""),
            payload.get("options") or {},
            source=payload.get("source_kind"),
        )
        output_path = result.output_path
        encoded = base64.b64encode(output_path.read_bytes()).decode("ascii")
    except ConversionError as exc:
        logger.warning("Sticker conversion task %s failed: %s", task_id, exc.detail)
        failure = exc.to_dict()
        failure.update({"task_id": task_id, "filename": filename})
        return failure
    finally:
        if output_path is not None:
            output_path.unlink(missing_ok=True)

    stem = Path(filename).stem if filename else "out"
    return {
        "status": "success",
        "task_id": task_id,
        "kind": result.kind.value if result.kind else None,
        "filename": f"{stem}.{result.kind.extension}" if result.kind else stem,
        "base64_data": encoded,
        "diagnostics": [diag.summary() for diag in result.diagnostics],
    }
