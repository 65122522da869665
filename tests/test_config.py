import pytest
from pydantic import ValidationError

from streamclip.models.config import CaptureConfig, apply_env_overrides, load_config
from streamclip.utils.io import write_yaml


def test_defaults():
    config = CaptureConfig()
    assert config.obs.url == "ws://127.0.0.1:4455"
    assert config.obs.replay_buffer_seconds == 300
    assert config.stt.max_reconnect_attempts == 5
    assert config.stt.reconnect_base_ms == 1000
    assert config.stt.reconnect_max_ms == 30000
    assert config.media.profile == "archive"
    assert config.media.clip_format is None


def test_yaml_then_environment(tmp_path):
    path = tmp_path / "streamclip.yaml"
    write_yaml(path, {"sessions_dir": "/data/sessions", "obs": {"url": "ws://obs:4455"}})

    config = load_config(path, environ={
        "OBS_WS_PASSWORD": "secret",
        "DEEPGRAM_API_KEY": "dg",
        "REPLAY_BUFFER_SECONDS": "120",
        "CLIP_OUTPUT_FORMAT": "webm",
    })
    assert config.sessions_dir == "/data/sessions"
    assert config.obs.url == "ws://obs:4455"
    assert config.obs.password == "secret"
    assert config.obs.replay_buffer_seconds == 120
    assert config.stt.api_key == "dg"
    assert config.media.clip_format == "webm"


def test_environment_beats_yaml(tmp_path):
    path = tmp_path / "streamclip.yaml"
    write_yaml(path, {"obs": {"url": "ws://from-file:4455"}})
    config = load_config(path, environ={"OBS_WS_URL": "ws://from-env:4455"})
    assert config.obs.url == "ws://from-env:4455"


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "none.yaml", environ={}) == CaptureConfig()


def test_empty_values_are_ignored():
    assert apply_env_overrides({}, {"FFMPEG_PATH": ""}) == {}


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        load_config(None, environ={"CLIP_OUTPUT_FORMAT": "avi"})


def test_unknown_profile_rejected_at_load(tmp_path):
    path = tmp_path / "streamclip.yaml"
    write_yaml(path, {"media": {"profile": "youtube"}})
    with pytest.raises(ValidationError):
        load_config(path, environ={})
