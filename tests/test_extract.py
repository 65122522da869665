import asyncio

import pytest

from fakes import FakeRunner
from streamclip.clipping.extract import ClipRequest, extract_clip, extract_clip_direct
from streamclip.media.ffmpeg import MediaError, MediaErrorCode

T0 = 1_000_000


def _request(tmp_path, buffer, **overrides):
    fields = dict(
        replay_buffer_path=str(buffer),
        t0=150,
        t1=160,
        session_dir=str(tmp_path / "session"),
        artifact_id="clip-1",
        session_started_at_ms=T0,
        replay_buffer_saved_at_ms=T0 + 200_000,
        replay_buffer_seconds=300,
    )
    fields.update(overrides)
    return ClipRequest(**fields)


def _buffer(tmp_path):
    path = tmp_path / "Replay 2024-01-01.mkv"
    path.write_bytes(b"buffer")
    return path


def test_extract_clip_produces_clip_and_thumbnail(tmp_path):
    runner = FakeRunner(buffer_duration=200)
    artifact = asyncio.run(extract_clip(runner, _request(tmp_path, _buffer(tmp_path))))

    assert artifact.t0 == 150 and artifact.t1 == 160
    assert artifact.start_offset == pytest.approx(150)
    assert artifact.duration_seconds == pytest.approx(10)
    assert artifact.clip_path.endswith("clips/clip-1.mp4")
    assert artifact.thumbnail_path.endswith("thumbnails/clip-1.jpg")
    assert artifact.complete
    # thumbnail is taken at the clip midpoint
    assert runner.thumbnails[0][2] == pytest.approx(5)
    assert artifact.metadata.duration == pytest.approx(10)


def test_thumbnail_failure_is_partial_success(tmp_path):
    runner = FakeRunner(fail_thumbnail=True)
    artifact = asyncio.run(extract_clip(runner, _request(tmp_path, _buffer(tmp_path))))

    assert artifact.thumbnail_path is None
    assert artifact.thumbnail_error.code == "THUMBNAIL_FAILED"
    assert not artifact.complete


def test_missing_buffer_fails_before_output(tmp_path):
    runner = FakeRunner()
    with pytest.raises(MediaError) as exc:
        asyncio.run(extract_clip(runner, _request(tmp_path, tmp_path / "gone.mkv")))
    assert exc.value.code == MediaErrorCode.INPUT_FILE_NOT_FOUND
    assert not (tmp_path / "session").exists()


def test_rolled_off_clip_writes_nothing(tmp_path):
    runner = FakeRunner(buffer_duration=3)
    request = _request(tmp_path, _buffer(tmp_path), t0=5, t1=10)
    with pytest.raises(MediaError) as exc:
        asyncio.run(extract_clip(runner, request))
    assert exc.value.code == MediaErrorCode.INVALID_TIMESTAMPS
    assert runner.trims == []
    assert not (tmp_path / "session" / "clips" / "clip-1.mp4").exists()


def test_reversed_window_rejected(tmp_path):
    with pytest.raises(MediaError) as exc:
        asyncio.run(extract_clip(FakeRunner(), _request(tmp_path, _buffer(tmp_path), t0=20, t1=10)))
    assert exc.value.code == MediaErrorCode.INVALID_TIMESTAMPS


def test_failed_trim_removes_partial_output(tmp_path):
    runner = FakeRunner(fail_trim=True)
    with pytest.raises(MediaError) as exc:
        asyncio.run(extract_clip(runner, _request(tmp_path, _buffer(tmp_path))))
    assert exc.value.code == MediaErrorCode.TRIM_FAILED
    assert exc.value.stderr == "boom"
    assert not (tmp_path / "session" / "clips" / "clip-1.mp4").exists()


def test_extract_direct_uses_given_offsets(tmp_path):
    runner = FakeRunner()
    artifact = asyncio.run(extract_clip_direct(
        runner, _buffer(tmp_path), tmp_path / "out", "a1", 12.0, 18.5, profile="web",
    ))
    assert runner.trims[0][2:] == (12.0, 6.5, "web")
    assert artifact.clip_path.endswith("a1.webm")


def test_extract_direct_rejects_empty_range(tmp_path):
    with pytest.raises(MediaError) as exc:
        asyncio.run(extract_clip_direct(FakeRunner(), _buffer(tmp_path), tmp_path, "a1", 5.0, 5.0))
    assert exc.value.code == MediaErrorCode.INVALID_TIMESTAMPS


def test_unknown_profile_is_a_trim_failure(tmp_path):
    runner = FakeRunner(buffer_duration=200)
    request = _request(tmp_path, _buffer(tmp_path), profile="youtube")
    with pytest.raises(MediaError) as exc:
        asyncio.run(extract_clip(runner, request))
    assert exc.value.code == MediaErrorCode.TRIM_FAILED
    assert exc.value.details["profile"] == "youtube"
    assert runner.trims == []
    assert not (tmp_path / "session" / "clips").exists()
