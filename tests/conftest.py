"""Shared pytest fixtures: settings rooted in tmp_path and scripted codec stand-ins."""

from __future__ import annotations

import struct
from pathlib import Path

import pytest

from sticker_converter.config import LimitSettings, Settings, ToolSettings, WorkspaceSettings
from sticker_converter.service import ConversionService
from sticker_converter.tools import ToolTable

from tests.helpers import fake_command, make_lottie


@pytest.fixture()
def fake_tool_settings() -> ToolSettings:
    return ToolSettings(
        gunzip=fake_command("fake_gunzip.py"),
        lottie_to_png=fake_command("fake_lottie_to_png.py"),
        gifski=fake_command("fake_gifski.py"),
        ffmpeg=fake_command("fake_ffmpeg.py"),
    )


@pytest.fixture()
def fake_tools(fake_tool_settings) -> ToolTable:
    return ToolTable.from_settings(fake_tool_settings)


@pytest.fixture()
def scratch_root(tmp_path) -> Path:
    return tmp_path / "scratch"


@pytest.fixture()
def test_settings(tmp_path, scratch_root, fake_tool_settings) -> Settings:
    return Settings(
        service_name="sticker-converter-test",
        environment="test",
        tools=fake_tool_settings,
        workspace=WorkspaceSettings(
            scratch_root=str(scratch_root),
            output_dir=str(tmp_path / "out"),
        ),
        limits=LimitSettings(
            max_input_bytes=1 << 20,
            max_video_sticker_bytes=4096,
            stage_timeout_sec=30,
            poll_interval_sec=0.05,
            max_concurrent_jobs=2,
        ),
    )


@pytest.fixture()
def service(test_settings) -> ConversionService:
    return ConversionService(test_settings)


@pytest.fixture()
def lottie_bytes() -> bytes:
    return make_lottie()


@pytest.fixture()
def gif_bytes() -> bytes:
    return b"GIF89a" + struct.pack("<HHBBB", 100, 80, 0, 0, 0) + b"\x3b"


@pytest.fixture()
def webm_bytes() -> bytes:
    return b"\x1a\x45\xdf\xa3" + b"\x00" * 32


@pytest.fixture()
def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
