"""Tests for the Celery conversion task."""

from __future__ import annotations

import base64

import sticker_converter.celery_app as worker
from sticker_converter.service import ConversionService

from tests.helpers import read_fake_gif


def _payload(data: bytes, **extra):
    payload = {"task_id": "task-1", "base64_data": base64.b64encode(data).decode("ascii")}
    payload.update(extra)
    return payload


def test_handle_conversion_task_success(monkeypatch, tmp_path, test_settings, lottie_bytes):
    monkeypatch.setattr(worker, "SETTINGS", test_settings)
    monkeypatch.setattr(worker, "_SERVICE", ConversionService(test_settings))

    result = worker.handle_conversion_task.run(
        _payload(
            lottie_bytes,
            target_kind="animated_gif",
            filename="AnimatedSticker.tgs",
            options={"width": 256, "height": 256},
        )
    )

    assert result["status"] == "success"
    assert result["task_id"] == "task-1"
    assert result["kind"] == "animated_gif"
    assert result["filename"] == "AnimatedSticker.gif"
    assert len(result["diagnostics"]) == 3

    gif_path = tmp_path / "decoded.gif"
    gif_path.write_bytes(base64.b64decode(result["base64_data"]))
    assert read_fake_gif(gif_path)["width"] == 256
    assert list((tmp_path / "out").iterdir()) == []


def test_handle_conversion_task_reports_failures(monkeypatch, test_settings, png_bytes):
    monkeypatch.setattr(worker, "_SERVICE", ConversionService(test_settings))

    result = worker.handle_conversion_task.run(_payload(png_bytes, target_kind="video_sticker", filename="cat.png"))

    assert result["status"] == "failure"
    assert result["error_code"] == "ERR_UNSUPPORTED_CONVERSION"
    assert result["task_id"] == "task-1"
    assert result["filename"] == "cat.png"


def test_handle_conversion_task_rejects_bad_payload(monkeypatch, test_settings):
    monkeypatch.setattr(worker, "_SERVICE", ConversionService(test_settings))

    missing = worker.handle_conversion_task.run({"task_id": "t", "target_kind": "animated_gif"})
    garbled = worker.handle_conversion_task.run(
        {"task_id": "t", "target_kind": "animated_gif", "base64_data": "***not base64***"}
    )

    assert missing["error_code"] == "ERR_INVALID_OPTIONS"
    assert garbled["error_code"] == "ERR_INVALID_OPTIONS"
    assert "base64" in garbled["message"]


def test_worker_ready_starts_metrics_when_enabled(monkeypatch, test_settings):
    starts: list[int] = []
    monitoring = test_settings.monitoring.model_copy(update={"enabled": True, "prometheus_port": 9191})
    monkeypatch.setattr(worker, "SETTINGS", test_settings.model_copy(update={"monitoring": monitoring}))
    monkeypatch.setattr(worker, "ensure_metrics_server", lambda port: starts.append(port))

    worker._on_worker_ready()

    assert starts == [9191]


def test_celery_app_configuration():
    conf = worker.celery_app.conf
    assert conf.task_default_queue == worker.SETTINGS.celery.default_queue
    assert conf.worker_prefetch_multiplier == worker.SETTINGS.celery.prefetch_multiplier
    assert "stickers.convert" in worker.celery_app.tasks
