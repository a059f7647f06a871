"""Unit tests for the error taxonomy and user-facing messages."""

from __future__ import annotations

import pytest

from sticker_converter.errors import (
    ERRORS,
    ConversionCancelledError,
    ErrorCodeSpec,
    ErrorRegistry,
    InputTooLargeError,
    InvalidOptionsError,
    ResourceError,
    StageFailedError,
    StageTimeoutError,
    UnknownFormatError,
    UnsupportedConversionError,
    user_message,
)
from sticker_converter.models import MediaKind, StageDiagnostics


def test_error_registry_rejects_duplicate_code():
    registry = ErrorRegistry()
    spec = ErrorCodeSpec(code="ERR_DUPLICATED", zh="重复", en="duplicate", status=4000)

    registry.register(spec)
    with pytest.raises(ValueError):
        registry.register(spec)

    with pytest.raises(KeyError):
        registry.get("ERR_MISSING")


def test_every_error_class_has_registered_code():
    for cls in (
        InvalidOptionsError,
        InputTooLargeError,
        UnknownFormatError,
        ResourceError,
        ConversionCancelledError,
        StageFailedError,
        StageTimeoutError,
    ):
        assert ERRORS.get(cls.code).code == cls.code
    assert ERRORS.get(UnsupportedConversionError.code).status == 4004


def test_default_detail_comes_from_registry():
    exc = UnknownFormatError()
    assert exc.detail == "File is not an image, GIF, or sticker."
    assert str(exc) == exc.detail


def test_unsupported_conversion_names_both_kinds():
    exc = UnsupportedConversionError(MediaKind.STATIC_IMAGE, MediaKind.VIDEO_STICKER)
    assert exc.source is MediaKind.STATIC_IMAGE
    assert "static_image -> video_sticker" in exc.detail


def test_stage_error_carries_diagnostics():
    diag = StageDiagnostics(stage="encode-gif", argv=("gifski",), returncode=1, stdout="", stderr="out of memory")
    exc = StageFailedError("encode-gif", "exited with status 1: out of memory", diag, [diag])

    assert exc.stage == "encode-gif"
    assert exc.output == "out of memory"
    assert exc.history == (diag,)
    payload = exc.to_dict()
    assert payload["status"] == "failure"
    assert payload["error_code"] == "ERR_STAGE_FAILED"
    assert payload["stage"] == "encode-gif"
    assert payload["diagnostics"] == "out of memory"
    assert "encode-gif" in payload["message"]


def test_resource_error_is_retriable():
    assert ResourceError("disk full").retriable is True
    assert StageTimeoutError("rasterize-frames", "timed out").retriable is False


def test_user_message_mapping():
    assert user_message(InputTooLargeError("12 MiB")) == "File is too large."
    assert user_message(UnknownFormatError()) == "File is not an image, GIF, or sticker."
    assert user_message(StageFailedError("encode-gif", "exited")) == "Something went wrong."
    assert user_message(RuntimeError("boom")) == "Something went wrong."
    assert user_message(InvalidOptionsError("quality: too big")).endswith("quality: too big")
