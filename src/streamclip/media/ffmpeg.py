"""FFmpeg command builder and async runner."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from streamclip.models.media import (
    ClipMetadata,
    MediaToolStatus,
    OutputProfile,
)
from streamclip.utils.progress import log_step

ProgressCallback = Callable[[float], None]


class MediaErrorCode(str, Enum):
    FFMPEG_NOT_FOUND = "FFMPEG_NOT_FOUND"
    FFPROBE_NOT_FOUND = "FFPROBE_NOT_FOUND"
    INPUT_FILE_NOT_FOUND = "INPUT_FILE_NOT_FOUND"
    INVALID_TIMESTAMPS = "INVALID_TIMESTAMPS"
    PROBE_FAILED = "PROBE_FAILED"
    TRIM_FAILED = "TRIM_FAILED"
    THUMBNAIL_FAILED = "THUMBNAIL_FAILED"
    OUTPUT_DIR_ERROR = "OUTPUT_DIR_ERROR"


class MediaError(Exception):
    """Raised when an encoder, prober or clip calculation fails."""

    def __init__(
        self,
        message: str,
        code: MediaErrorCode,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.details = details or {}
        super().__init__(message)

    @property
    def stderr(self) -> str:
        return self.details.get("stderr", "")


@dataclass
class ProcessResult:
    cmd: list[str]
    returncode: int
    stdout: str
    stderr: str


async def run_process(
    cmd: list[str],
    *,
    on_line: Callable[[str], None] | None = None,
) -> ProcessResult:
    """Run a command to completion, streaming stdout lines to ``on_line``.

    Raises FileNotFoundError if the binary does not exist.
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stderr_task = asyncio.ensure_future(proc.stderr.read())
    lines: list[str] = []
    try:
        async for raw in proc.stdout:
            line = raw.decode("utf-8", errors="replace")
            lines.append(line)
            if on_line is not None:
                on_line(line.strip())
        stderr = await stderr_task
        returncode = await proc.wait()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
        stderr_task.cancel()
        raise
    return ProcessResult(
        cmd=cmd,
        returncode=returncode,
        stdout="".join(lines),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def trim_args(
    input_path: Path | str,
    output_path: Path | str,
    start_offset: float,
    duration: float,
    profile: OutputProfile,
) -> list[str]:
    """Arguments (after the binary) to cut ``duration`` seconds at ``start_offset``."""
    return [
        "-y", "-hide_banner", "-loglevel", "error",
        "-ss", f"{start_offset:.3f}",
        "-i", str(input_path),
        "-t", f"{duration:.3f}",
        "-c:v", profile.video_codec,
        "-c:a", profile.audio_codec,
        *profile.output_options,
        "-progress", "pipe:1", "-nostats",
        str(output_path),
    ]


def thumbnail_args(
    input_path: Path | str,
    output_path: Path | str,
    timestamp: float,
    *,
    width: int = 640,
    quality: int = 5,
) -> list[str]:
    """Arguments to grab one frame at ``timestamp``, scaled to ``width``."""
    return [
        "-y", "-hide_banner", "-loglevel", "error",
        "-ss", f"{max(timestamp, 0.0):.3f}",
        "-i", str(input_path),
        "-frames:v", "1",
        "-vf", f"scale={width}:-1",
        "-q:v", str(quality),
        str(output_path),
    ]


def parse_progress(line: str, duration: float) -> float | None:
    """Turn an ffmpeg ``-progress`` line into a percentage, if it carries time."""
    key, _, value = line.partition("=")
    if key not in ("out_time_us", "out_time_ms") or not value.strip().isdigit():
        return None
    if duration <= 0:
        return None
    # ffmpeg reports out_time_ms in microseconds too
    seconds = int(value) / 1_000_000
    return max(0.0, min(100.0, seconds / duration * 100.0))


class MediaRunner:
    """Invokes ffmpeg and ffprobe.

    Operations are independent and safe to run concurrently; none of them
    retries.
    """

    def __init__(self, ffmpeg_path: str | None = None, ffprobe_path: str | None = None):
        self.ffmpeg_path = ffmpeg_path or "ffmpeg"
        self.ffprobe_path = ffprobe_path or "ffprobe"

    async def _ffmpeg(
        self,
        args: list[str],
        *,
        on_line: Callable[[str], None] | None = None,
    ) -> ProcessResult:
        cmd = [self.ffmpeg_path, *args]
        try:
            return await run_process(cmd, on_line=on_line)
        except FileNotFoundError as e:
            raise MediaError(
                f"ffmpeg not found: {self.ffmpeg_path}",
                MediaErrorCode.FFMPEG_NOT_FOUND,
                {"ffmpeg_path": self.ffmpeg_path},
            ) from e

    async def trim(
        self,
        input_path: Path | str,
        output_path: Path | str,
        start_offset: float,
        duration: float,
        profile: OutputProfile,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Cut a time range into a new file with the given profile."""
        args = trim_args(input_path, output_path, start_offset, duration, profile)
        last_pct = -1

        def _on_line(line: str) -> None:
            nonlocal last_pct
            pct = parse_progress(line, duration)
            if pct is None:
                return
            if on_progress is not None:
                on_progress(pct)
            if int(pct) // 25 > last_pct // 25:
                last_pct = int(pct)
                log_step("FFmpeg", f"Trim progress: {last_pct}%")

        log_step(
            "FFmpeg",
            f"Trimming {Path(input_path).name} "
            f"[{start_offset:.2f}s +{duration:.2f}s] → {Path(output_path).name}",
        )
        result = await self._ffmpeg(args, on_line=_on_line)
        if result.returncode != 0:
            raise MediaError(
                f"Video trimming failed (rc={result.returncode}): {result.stderr[:500]}",
                MediaErrorCode.TRIM_FAILED,
                {
                    "input_path": str(input_path),
                    "output_path": str(output_path),
                    "start_offset": start_offset,
                    "duration": duration,
                    "cmd": result.cmd,
                    "stderr": result.stderr,
                },
            )

    async def thumbnail(
        self,
        input_path: Path | str,
        output_path: Path | str,
        timestamp: float,
        *,
        width: int = 640,
        quality: int = 5,
    ) -> Path:
        """Extract exactly one frame as an image."""
        input_path = Path(input_path)
        output_path = Path(output_path)
        if not input_path.exists():
            raise MediaError(
                f"Video file not found: {input_path}",
                MediaErrorCode.INPUT_FILE_NOT_FOUND,
                {"video_path": str(input_path)},
            )
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MediaError(
                f"Failed to create output directory: {output_path.parent}",
                MediaErrorCode.OUTPUT_DIR_ERROR,
                {"output_dir": str(output_path.parent), "error": str(e)},
            ) from e

        result = await self._ffmpeg(
            thumbnail_args(input_path, output_path, timestamp, width=width, quality=quality)
        )
        if result.returncode != 0 or not output_path.exists():
            raise MediaError(
                f"Thumbnail generation failed (rc={result.returncode}): {result.stderr[:500]}",
                MediaErrorCode.THUMBNAIL_FAILED,
                {
                    "video_path": str(input_path),
                    "output_path": str(output_path),
                    "timestamp": timestamp,
                    "stderr": result.stderr,
                },
            )
        return output_path

    async def probe(self, path: Path | str) -> ClipMetadata:
        from streamclip.media.ffprobe import probe_video

        return await probe_video(path, ffprobe_path=self.ffprobe_path)

    async def availability(self) -> MediaToolStatus:
        """Check whether both binaries can be executed."""
        ffmpeg_ok, ffprobe_ok = await asyncio.gather(
            _binary_runs(self.ffmpeg_path),
            _binary_runs(self.ffprobe_path),
        )
        return MediaToolStatus(ffmpeg=ffmpeg_ok, ffprobe=ffprobe_ok)


async def _binary_runs(binary: str) -> bool:
    try:
        result = await run_process([binary, "-version"])
    except OSError:
        return False
    return result.returncode == 0
