"""Prometheus metrics for conversions and individual codec stages."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

CONVERSIONS_COMPLETED = Counter(
    "sticker_conversions_total",
    "Total number of sticker conversions by outcome",
    labelnames=("source", "target", "status"),
)
STAGE_DURATION = Histogram(
    "sticker_stage_duration_seconds",
    "Wall time spent in each external codec stage",
    labelnames=("stage",),
)

_metrics_started = False


def ensure_metrics_server(port: int) -> None:
    global _metrics_started
    if _metrics_started:
        return
    start_http_server(port)
    _metrics_started = True
    logger.info("Prometheus metrics server started", extra={"port": port})


def record_conversion(source: str, target: str, status: str) -> None:
    CONVERSIONS_COMPLETED.labels(source=source, target=target, status=status).inc()


def observe_stage(stage: str, seconds: float) -> None:
    STAGE_DURATION.labels(stage=stage).observe(seconds)
