import asyncio
import base64

from fakes import FakeControlClient
from streamclip.models.config import ObsConfig
from streamclip.obs.controller import OBS_MANAGED, RecordingController

FAST = ObsConfig(save_notification_timeout_ms=50, connect_attempts=2)


def test_save_returns_notified_path():
    client = FakeControlClient(saved_path="/videos/Replay 1.mkv")
    controller = RecordingController(client, FAST)
    assert asyncio.run(controller.save_replay_buffer()) == "/videos/Replay 1.mkv"
    assert controller.last_replay_buffer_path == "/videos/Replay 1.mkv"


def test_save_without_notification_returns_sentinel():
    controller = RecordingController(FakeControlClient(), FAST)
    assert asyncio.run(controller.save_replay_buffer()) == OBS_MANAGED


def test_failed_save_returns_none():
    controller = RecordingController(FakeControlClient(fail={"SaveReplayBuffer"}), FAST)
    assert asyncio.run(controller.save_replay_buffer()) is None


def test_ensure_starts_inactive_buffer():
    client = FakeControlClient({"GetReplayBufferStatus": {"outputActive": False}})
    assert asyncio.run(RecordingController(client, FAST).ensure_replay_buffer())
    assert [c[0] for c in client.calls] == ["GetReplayBufferStatus", "StartReplayBuffer"]


def test_ensure_leaves_running_buffer_alone():
    client = FakeControlClient({"GetReplayBufferStatus": {"outputActive": True}})
    asyncio.run(RecordingController(client, FAST).ensure_replay_buffer())
    assert [c[0] for c in client.calls] == ["GetReplayBufferStatus"]


def test_ensure_swallows_errors():
    client = FakeControlClient(fail={"GetReplayBufferStatus"})
    assert asyncio.run(RecordingController(client, FAST).ensure_replay_buffer()) is False


def test_connect_retries_transient_failures():
    client = FakeControlClient(connect_failures=1)
    controller = RecordingController(client, FAST)
    assert asyncio.run(controller.connect())
    assert client.connect_calls == 2
    assert controller.connected


def test_connect_gives_up_quietly():
    client = FakeControlClient(connect_failures=5)
    controller = RecordingController(client, ObsConfig(connect_attempts=1))
    assert asyncio.run(controller.connect()) is False
    assert not controller.connected


def test_screenshot_written_to_disk(tmp_path):
    png = b"\x89PNG\r\n\x1a\nfake"
    client = FakeControlClient({
        "GetSourceScreenshot": {"imageData": "data:image/png;base64," + base64.b64encode(png).decode()}
    })
    out = tmp_path / "frames" / "f.png"
    assert asyncio.run(RecordingController(client, FAST).take_screenshot("Camera", out))
    assert out.read_bytes() == png
    assert client.calls[0][1]["sourceName"] == "Camera"


def test_screenshot_failure_is_false(tmp_path):
    client = FakeControlClient(fail={"GetSourceScreenshot"})
    assert not asyncio.run(RecordingController(client, FAST).take_screenshot("Camera", tmp_path / "f.png"))


def test_resolve_prefers_provided_then_scan(tmp_path):
    provided = tmp_path / "given.mkv"
    provided.write_bytes(b"x")
    scanned = tmp_path / "Replay.mp4"
    scanned.write_bytes(b"x")
    config = ObsConfig(replay_output_dir=str(tmp_path))
    controller = RecordingController(FakeControlClient(), config)

    assert controller.resolve_replay_buffer(str(provided)) == provided
    assert controller.resolve_replay_buffer(OBS_MANAGED) in (provided, scanned)
    assert controller.resolve_replay_buffer(str(tmp_path / "missing.mkv")) is not None


def test_resolve_without_sources_is_none():
    controller = RecordingController(FakeControlClient(), ObsConfig())
    assert controller.resolve_replay_buffer(None) is None
