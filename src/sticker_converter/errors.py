"""Error taxonomy and code registry for consistent conversion failures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

if TYPE_CHECKING:  # pragma: no cover - import guard for type checkers
    from .models import StageDiagnostics


@dataclass(frozen=True)
class ErrorCodeSpec:
    code: str
    zh: str
    en: str
    status: int
    retriable: bool = False


class ErrorRegistry:
    def __init__(self) -> None:
        self._codes: Dict[str, ErrorCodeSpec] = {}

    def register(self, spec: ErrorCodeSpec) -> None:
        if spec.code in self._codes:
            raise ValueError(f"Error code {spec.code} already registered")
        self._codes[spec.code] = spec

    def get(self, code: str) -> ErrorCodeSpec:
        if code not in self._codes:
            raise KeyError(f"Unknown error code: {code}")
        return self._codes[code]

    def to_dict(self) -> Dict[str, ErrorCodeSpec]:
        return dict(self._codes)


ERRORS = ErrorRegistry()


def register_default_errors() -> None:
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_INVALID_OPTIONS",
            zh="转换参数无效",
            en="Invalid conversion options.",
            status=4001,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_INPUT_TOO_LARGE",
            zh="文件过大",
            en="File is too large.",
            status=4002,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_UNKNOWN_FORMAT",
            zh="无法识别的文件格式",
            en="File is not an image, GIF, or sticker.",
            status=4003,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_UNSUPPORTED_CONVERSION",
            zh="不支持该转换",
            en="This conversion is not supported.",
            status=4004,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_RESOURCE",
            zh="临时存储不可用",
            en="Server is busy, please try again later.",
            status=5001,
            retriable=True,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_STAGE_TIMEOUT",
            zh="转换超时",
            en="Conversion took too long.",
            status=5002,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_STAGE_FAILED",
            zh="转换失败",
            en="Something went wrong.",
            status=5003,
        )
    )
    ERRORS.register(
        ErrorCodeSpec(
            code="ERR_CANCELLED",
            zh="转换已取消",
            en="Conversion was cancelled.",
            status=4990,
        )
    )


register_default_errors()


class ConversionError(Exception):
    """Base class for every failure surfaced by the conversion engine."""

    code = "ERR_STAGE_FAILED"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or ERRORS.get(self.code).en
        super().__init__(self.detail)

    @property
    def spec(self) -> ErrorCodeSpec:
        return ERRORS.get(self.code)

    @property
    def retriable(self) -> bool:
        return self.spec.retriable

    def to_dict(self) -> Dict[str, Any]:
        spec = self.spec
        return {
            "status": "failure",
            "error_code": spec.code,
            "error_status": spec.status,
            "message": self.detail,
            "user_message": spec.en,
            "zh_message": spec.zh,
            "retriable": spec.retriable,
        }


class InvalidOptionsError(ConversionError):
    code = "ERR_INVALID_OPTIONS"


class InputTooLargeError(InvalidOptionsError):
    code = "ERR_INPUT_TOO_LARGE"


class UnknownFormatError(ConversionError):
    code = "ERR_UNKNOWN_FORMAT"


class UnsupportedConversionError(ConversionError):
    code = "ERR_UNSUPPORTED_CONVERSION"

    def __init__(self, source: Any, target: Any) -> None:
        self.source = source
        self.target = target
        super().__init__(f"No pipeline for {_kind_name(source)} -> {_kind_name(target)}")


class ResourceError(ConversionError):
    code = "ERR_RESOURCE"


class ConversionCancelledError(ConversionError):
    code = "ERR_CANCELLED"


class StageError(ConversionError):
    """A single external stage failed; carries its identity and diagnostics."""

    def __init__(
        self,
        stage: str,
        detail: str,
        diagnostics: Optional["StageDiagnostics"] = None,
        history: Sequence["StageDiagnostics"] = (),
    ) -> None:
        self.stage = stage
        self.diagnostics = diagnostics
        self.history = tuple(history)
        super().__init__(f"Stage '{stage}' {detail}")

    @property
    def output(self) -> str:
        if not self.diagnostics:
            return ""
        return "\n".join(part for part in (self.diagnostics.stderr, self.diagnostics.stdout) if part)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["stage"] = self.stage
        payload["diagnostics"] = self.output
        return payload


class StageFailedError(StageError):
    code = "ERR_STAGE_FAILED"


class StageTimeoutError(StageError):
    code = "ERR_STAGE_TIMEOUT"


def _kind_name(kind: Any) -> str:
    return str(getattr(kind, "value", kind))


def user_message(exc: BaseException) -> str:
    """Concise message suitable for replying to the end user."""

    if isinstance(exc, InvalidOptionsError) and not isinstance(exc, InputTooLargeError):
        # user-correctable, so the detail is shown as-is
        return f"{exc.spec.en} {exc.detail}"
    if isinstance(exc, ConversionError):
        return exc.spec.en
    return ERRORS.get("ERR_STAGE_FAILED").en
