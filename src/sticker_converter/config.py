"""Centralized settings and configuration loading utilities."""

from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import OutputOptions


class ToolSettings(BaseModel):
    """Command prefixes for every external codec, keyed by tool name."""

    gunzip: List[str] = Field(default_factory=lambda: ["gunzip"])
    lottie_to_png: List[str] = Field(default_factory=lambda: ["lottie_to_png"])
    gifski: List[str] = Field(default_factory=lambda: ["gifski"])
    ffmpeg: List[str] = Field(default_factory=lambda: ["ffmpeg"])


class WorkspaceSettings(BaseModel):
    scratch_root: str = Field(default_factory=lambda: str(Path(tempfile.gettempdir()) / "sticker_converter"))
    output_dir: str = Field(default_factory=lambda: str(Path(tempfile.gettempdir()) / "sticker_converter_out"))


class LimitSettings(BaseModel):
    max_input_bytes: int = Field(10 << 20, ge=1)
    max_video_sticker_bytes: int = Field(256 * 1000, ge=1)
    lossless_first: bool = True
    stage_timeout_sec: float = Field(60.0, gt=0)
    poll_interval_sec: float = Field(0.2, gt=0)
    max_concurrent_jobs: int = Field(4, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_dir: str = "./logs"
    max_log_file_size_mb: int = 100
    backup_count: int = 7


class MonitoringSettings(BaseModel):
    enabled: bool = False
    prometheus_port: int = 9095


class CelerySettings(BaseModel):
    broker_url: str = "redis://localhost:6379/0"
    result_backend: str = "redis://localhost:6379/1"
    default_queue: str = "stickers"
    task_time_limit_sec: int = 300
    prefetch_multiplier: int = 1
    concurrency: int = Field(4, ge=1)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STICKER_", env_nested_delimiter="__", extra="allow")

    service_name: str = "sticker-converter"
    environment: str = "dev"

    output: OutputOptions = OutputOptions()
    tools: ToolSettings = ToolSettings()
    workspace: WorkspaceSettings = WorkspaceSettings()
    limits: LimitSettings = LimitSettings()
    logging: LoggingSettings = LoggingSettings()
    monitoring: MonitoringSettings = MonitoringSettings()
    celery: CelerySettings = CelerySettings()

    @staticmethod
    def load_yaml_config_file(file_path: str | Path | None) -> Dict[str, Any]:
        if not file_path:
            return {}
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        import yaml  # lazy import for optional dependency

        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError("Configuration YAML must produce a mapping")
        return data

    @classmethod
    def from_source(cls, *, config_file: str | None = None, **overrides: Any) -> "Settings":
        base_data = cls.load_yaml_config_file(config_file)
        base_data.update(overrides)
        return cls(**base_data)


@lru_cache
def get_settings() -> Settings:
    cfg_file = os.getenv("STICKER_CONFIG_FILE")
    if cfg_file:
        return Settings.from_source(config_file=cfg_file)

    default_path = Path.cwd() / "config" / "settings.yaml"
    if default_path.exists():
        return Settings.from_source(config_file=str(default_path))

    return Settings()


def reload_settings() -> None:
    get_settings.cache_clear()
