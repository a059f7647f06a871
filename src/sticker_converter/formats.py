"""Container signature sniffing for incoming sticker media."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from .errors import UnknownFormatError
from .models import MediaKind

SNIFF_BYTES = 16

EXTENSION_KINDS: Dict[str, MediaKind] = {
    ".tgs": MediaKind.VECTOR_ANIMATION,
    ".gif": MediaKind.ANIMATED_GIF,
    ".webm": MediaKind.VIDEO_STICKER,
    ".webp": MediaKind.STATIC_IMAGE,
    ".png": MediaKind.STATIC_IMAGE,
    ".jpg": MediaKind.STATIC_IMAGE,
    ".jpeg": MediaKind.STATIC_IMAGE,
    ".bmp": MediaKind.STATIC_IMAGE,
}


def sniff_bytes(head: bytes) -> Optional[MediaKind]:
    """Classify a buffer by its leading magic bytes."""

    if head.startswith(b"\x1f\x8b"):
        return MediaKind.VECTOR_ANIMATION
    if head.startswith((b"GIF87a", b"GIF89a")):
        return MediaKind.ANIMATED_GIF
    if head.startswith(b"\x1a\x45\xdf\xa3"):
        return MediaKind.VIDEO_STICKER
    if head.startswith(b"\x89PNG\r\n\x1a\n") or head.startswith(b"\xff\xd8\xff"):
        return MediaKind.STATIC_IMAGE
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return MediaKind.STATIC_IMAGE
    if head.startswith(b"BM"):
        return MediaKind.STATIC_IMAGE
    return None


def kind_from_extension(path: str | Path) -> Optional[MediaKind]:
    return EXTENSION_KINDS.get(Path(path).suffix.lower())


def read_head(path: Path) -> bytes:
    with path.open("rb") as handle:
        return handle.read(SNIFF_BYTES)


def detect_kind(data: bytes | bytearray | None = None, path: str | Path | None = None) -> MediaKind:
    """Infer the media kind from magic bytes, falling back to the file extension."""

    head = bytes(data[:SNIFF_BYTES]) if data is not None else b""
    if not head and path is not None and Path(path).is_file():
        head = read_head(Path(path))

    kind = sniff_bytes(head) if head else None
    if kind is None and path is not None:
        kind = kind_from_extension(path)
    if kind is None:
        label = Path(path).name if path is not None else "inline data"
        raise UnknownFormatError(f"Unable to classify {label}")
    return kind
