"""Sticker media conversion engine orchestrating external codec pipelines."""

from __future__ import annotations

from .errors import (
    ConversionCancelledError,
    ConversionError,
    InputTooLargeError,
    InvalidOptionsError,
    ResourceError,
    StageFailedError,
    StageTimeoutError,
    UnknownFormatError,
    UnsupportedConversionError,
    user_message,
)
from .models import ConversionRequest, MediaKind, OutputOptions, PipelineResult, StageDiagnostics
from .service import ConversionService, convert

__all__ = [
    "ConversionCancelledError",
    "ConversionError",
    "ConversionRequest",
    "ConversionService",
    "InputTooLargeError",
    "InvalidOptionsError",
    "MediaKind",
    "OutputOptions",
    "PipelineResult",
    "ResourceError",
    "StageDiagnostics",
    "StageFailedError",
    "StageTimeoutError",
    "UnknownFormatError",
    "UnsupportedConversionError",
    "convert",
    "user_message",
]
