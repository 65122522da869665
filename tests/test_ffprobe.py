import asyncio

import pytest

from streamclip.media.ffmpeg import MediaError, MediaErrorCode
from streamclip.media.ffprobe import parse_probe_output, probe_video

PROBE = {
    "streams": [
        {"codec_type": "audio", "codec_name": "aac"},
        {
            "codec_type": "video",
            "codec_name": "h264",
            "width": 1280,
            "height": 720,
            "r_frame_rate": "60/1",
            "duration": "31.0",
        },
    ],
    "format": {"duration": "30.5", "bit_rate": "4500000", "format_name": "matroska,webm"},
}


def test_parse_probe_output():
    meta = parse_probe_output(PROBE)
    assert meta.duration == pytest.approx(30.5)
    assert (meta.width, meta.height) == (1280, 720)
    assert meta.codec == "h264"
    assert meta.fps == "60/1"
    assert meta.bitrate == 4_500_000
    assert meta.format == "matroska,webm"


def test_parse_probe_output_defaults():
    meta = parse_probe_output({"streams": [{"codec_type": "video"}]})
    assert (meta.width, meta.height, meta.fps) == (1920, 1080, "30/1")
    assert meta.duration == 0.0


def test_audio_only_file_fails():
    with pytest.raises(MediaError) as exc:
        parse_probe_output({"streams": [{"codec_type": "audio"}], "format": {}})
    assert exc.value.code == MediaErrorCode.PROBE_FAILED


def test_probe_missing_file(tmp_path):
    with pytest.raises(MediaError) as exc:
        asyncio.run(probe_video(tmp_path / "nope.mp4"))
    assert exc.value.code == MediaErrorCode.INPUT_FILE_NOT_FOUND


def test_probe_missing_binary(tmp_path):
    video = tmp_path / "v.mp4"
    video.write_bytes(b"x")
    with pytest.raises(MediaError) as exc:
        asyncio.run(probe_video(video, ffprobe_path=str(tmp_path / "no-ffprobe")))
    assert exc.value.code == MediaErrorCode.FFPROBE_NOT_FOUND
