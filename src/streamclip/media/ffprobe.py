"""FFprobe wrapper for video file metadata extraction."""

from __future__ import annotations

import json
from pathlib import Path

from streamclip.media.ffmpeg import MediaError, MediaErrorCode, run_process
from streamclip.models.media import ClipMetadata


def parse_probe_output(data: dict, path: Path | str = "") -> ClipMetadata:
    """Build metadata from ffprobe's ``-print_format json`` output."""
    video_stream = None
    for stream in data.get("streams", []):
        if stream.get("codec_type") == "video":
            video_stream = stream
            break

    if video_stream is None:
        raise MediaError(
            "No video stream found in file",
            MediaErrorCode.PROBE_FAILED,
            {
                "file_path": str(path),
                "streams": [s.get("codec_type") for s in data.get("streams", [])],
            },
        )

    fmt = data.get("format", {})

    # Prefer container duration, fall back to the stream's
    duration = fmt.get("duration", video_stream.get("duration", 0))

    fps = video_stream.get("r_frame_rate") or video_stream.get("avg_frame_rate") or "30/1"
    bitrate = fmt.get("bit_rate", video_stream.get("bit_rate", 0))

    try:
        return ClipMetadata(
            duration=float(duration or 0),
            width=int(video_stream.get("width") or 1920),
            height=int(video_stream.get("height") or 1080),
            codec=video_stream.get("codec_name", "unknown"),
            fps=fps,
            bitrate=int(bitrate or 0),
            format=fmt.get("format_name", "unknown"),
        )
    except (TypeError, ValueError) as e:
        raise MediaError(
            f"Failed to parse video metadata: {e}",
            MediaErrorCode.PROBE_FAILED,
            {"file_path": str(path)},
        ) from e


async def probe_video(path: Path | str, *, ffprobe_path: str = "ffprobe") -> ClipMetadata:
    """Probe a video file with FFprobe and return metadata."""
    path = Path(path)
    if not path.exists():
        raise MediaError(
            f"Input file not found: {path}",
            MediaErrorCode.INPUT_FILE_NOT_FOUND,
            {"file_path": str(path)},
        )

    try:
        result = await run_process([
            ffprobe_path,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(path),
        ])
    except FileNotFoundError as e:
        raise MediaError(
            f"ffprobe not found: {ffprobe_path}",
            MediaErrorCode.FFPROBE_NOT_FOUND,
            {"ffprobe_path": ffprobe_path},
        ) from e

    if result.returncode != 0:
        raise MediaError(
            f"Failed to probe video (rc={result.returncode})",
            MediaErrorCode.PROBE_FAILED,
            {"file_path": str(path), "stderr": result.stderr},
        )

    try:
        data = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise MediaError(
            f"Unreadable ffprobe output: {e}",
            MediaErrorCode.PROBE_FAILED,
            {"file_path": str(path)},
        ) from e

    return parse_probe_output(data, path)
