"""Configuration models for each service component."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from streamclip.utils.io import read_yaml

DEFAULT_CONFIG_FILE = "streamclip.yaml"


class ObsConfig(BaseModel):
    """Connection and replay-buffer settings for the recording tool."""

    url: str = "ws://127.0.0.1:4455"
    password: str | None = None
    replay_buffer_seconds: int = Field(default=300, ge=5, le=21600)
    replay_output_dir: str | None = None
    save_notification_timeout_ms: int = Field(default=500, ge=50, le=10000)
    request_timeout_seconds: float = Field(default=5.0, gt=0.0, le=60.0)
    connect_attempts: int = Field(default=3, ge=1, le=10)
    scan_max_age_seconds: int = Field(default=30, ge=1, le=3600)


class MediaConfig(BaseModel):
    """Configuration for the ffmpeg/ffprobe runner."""

    ffmpeg_path: str | None = None
    ffprobe_path: str | None = None
    clip_format: Literal["mp4", "webm", "mov"] | None = None  # None: the profile's container
    profile: Literal["archive", "social", "web"] = "archive"
    thumbnail_width: int = Field(default=640, ge=64, le=3840)
    thumbnail_quality: int = Field(default=5, ge=1, le=31)


class SttConfig(BaseModel):
    """Configuration for the streaming transcription provider."""

    provider: str = "deepgram"  # deepgram | assemblyai | whisper
    api_key: str | None = None
    endpoint_url: str = "wss://api.deepgram.com/v1/listen"
    model: str = "nova-2"
    language: str = "en-US"
    sample_rate: int = 16000
    channels: int = Field(default=1, ge=1, le=8)
    smart_format: bool = True
    connect_timeout_seconds: float = Field(default=10.0, gt=0.0, le=120.0)
    keepalive_interval_seconds: float = Field(default=10.0, gt=0.0, le=60.0)
    max_reconnect_attempts: int = Field(default=5, ge=0, le=50)
    reconnect_base_ms: int = Field(default=1000, ge=10)
    reconnect_max_ms: int = Field(default=30000, ge=10)
    subscriber_queue_size: int = Field(default=256, ge=1)


class BroadcastConfig(BaseModel):
    """Configuration for the listener WebSocket server."""

    host: str = "127.0.0.1"
    port: int = Field(default=3124, ge=1, le=65535)
    queue_size: int = Field(default=256, ge=1)


class CaptureConfig(BaseModel):
    """All service configuration."""

    sessions_dir: str = "sessions"
    obs: ObsConfig = Field(default_factory=ObsConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    stt: SttConfig = Field(default_factory=SttConfig)
    broadcast: BroadcastConfig = Field(default_factory=BroadcastConfig)


# env var → (section, field); section None means top level
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "SESSION_DIR": (None, "sessions_dir"),
    "OBS_WS_URL": ("obs", "url"),
    "OBS_WS_PASSWORD": ("obs", "password"),
    "OBS_REPLAY_OUTPUT_DIR": ("obs", "replay_output_dir"),
    "REPLAY_BUFFER_SECONDS": ("obs", "replay_buffer_seconds"),
    "FFMPEG_PATH": ("media", "ffmpeg_path"),
    "FFPROBE_PATH": ("media", "ffprobe_path"),
    "CLIP_OUTPUT_FORMAT": ("media", "clip_format"),
    "STT_PROVIDER": ("stt", "provider"),
    "DEEPGRAM_API_KEY": ("stt", "api_key"),
    "WS_PORT": ("broadcast", "port"),
}


def apply_env_overrides(data: dict, environ: dict[str, str] | None = None) -> dict:
    """Overlay environment variables on raw config data."""
    environ = os.environ if environ is None else environ
    merged = dict(data)
    for var, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        if section is None:
            merged[field] = value
        else:
            merged[section] = {**dict(merged.get(section) or {}), field: value}
    return merged


def load_config(
    path: Path | str | None = None,
    *,
    environ: dict[str, str] | None = None,
) -> CaptureConfig:
    """Load configuration from YAML (if present) with environment overrides."""
    data: dict = {}
    if path is not None and Path(path).exists():
        data = read_yaml(path)
    return CaptureConfig(**apply_env_overrides(data, environ))
