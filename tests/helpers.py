"""Helpers shared by the test modules for driving the scripted codec stand-ins."""

from __future__ import annotations

import gzip
import json
import struct
import subprocess
import sys
from pathlib import Path
from typing import Dict, List

FAKE_TOOLS_DIR = Path(__file__).resolve().parent / "fake_tools"


def fake_command(script: str) -> List[str]:
    return [sys.executable, str(FAKE_TOOLS_DIR / script)]


def read_fake_gif(path: Path) -> Dict[str, object]:
    """Decode the header and frame comment written by the gifski stand-in."""

    data = path.read_bytes()
    width, height = struct.unpack("<HH", data[6:10])
    frames: List[str] = []
    marker = data.find(b"\x21\xfe")
    if marker != -1:
        cursor = marker + 2
        comment = b""
        while data[cursor]:
            size = data[cursor]
            comment += data[cursor + 1:cursor + 1 + size]
            cursor += size + 1
        text = comment.decode("ascii")
        if text.startswith("frames="):
            frames = text[len("frames="):].split(",")
    return {"width": width, "height": height, "frames": frames}


def make_lottie(frames: int = 3, frame_rate: int = 50) -> bytes:
    animation = {
        "v": "5.5.2",
        "fr": frame_rate,
        "ip": 0,
        "op": frames,
        "w": 512,
        "h": 512,
        "layers": [],
    }
    return gzip.compress(json.dumps(animation).encode("utf-8"))


def track_processes(monkeypatch) -> List[subprocess.Popen]:
    """Record every child the executor starts so tests can inspect it afterwards."""

    created: List[subprocess.Popen] = []
    original = subprocess.Popen

    class _TrackingPopen(original):  # type: ignore[misc, valid-type]
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            created.append(self)

    monkeypatch.setattr("sticker_converter.executor.subprocess.Popen", _TrackingPopen)
    return created
