"""Extract highlight clips from a saved replay buffer via FFmpeg."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from streamclip.clipping.offsets import calculate_buffer_offsets
from streamclip.media.ffmpeg import MediaError, MediaErrorCode, MediaRunner, ProgressCallback
from streamclip.models.media import ClipArtifact, ErrorInfo, get_profile
from streamclip.utils.progress import log_step, log_success, log_warning

CLIPS_DIR = "clips"
THUMBNAILS_DIR = "thumbnails"


class ClipRequest(BaseModel):
    """Everything needed to cut one clip out of a replay buffer."""

    replay_buffer_path: str
    t0: float
    t1: float
    session_dir: str
    artifact_id: str
    session_started_at_ms: int
    replay_buffer_saved_at_ms: int
    replay_buffer_seconds: float = 300
    format: str | None = None  # defaults to the profile's container
    profile: str = "archive"
    thumbnail_width: int = 640
    thumbnail_quality: int = 5


def prepare_output_dirs(base_dir: Path) -> tuple[Path, Path]:
    clips_dir = base_dir / CLIPS_DIR
    thumbnails_dir = base_dir / THUMBNAILS_DIR
    try:
        clips_dir.mkdir(parents=True, exist_ok=True)
        thumbnails_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise MediaError(
            "Failed to create output directories",
            MediaErrorCode.OUTPUT_DIR_ERROR,
            {"clips_dir": str(clips_dir), "thumbnails_dir": str(thumbnails_dir), "error": str(e)},
        ) from e
    return clips_dir, thumbnails_dir


async def extract_clip(
    runner: MediaRunner,
    request: ClipRequest,
    *,
    on_progress: ProgressCallback | None = None,
) -> ClipArtifact:
    """Cut ``[t0, t1]`` out of the replay buffer and thumbnail it.

    Steps:
    1. Validate the buffer file and timestamps
    2. Probe the buffer for its real duration
    3. Compute offsets inside the buffer
    4. Trim into clips/<artifact_id>.<format>
    5. Thumbnail at the clip midpoint (failure recorded, not raised)
    6. Probe the clip for final metadata
    """
    buffer_path = Path(request.replay_buffer_path)
    if not buffer_path.exists():
        raise MediaError(
            f"Replay buffer file not found: {buffer_path}",
            MediaErrorCode.INPUT_FILE_NOT_FOUND,
            {"replay_buffer_path": str(buffer_path)},
        )
    if request.t0 < 0 or request.t1 < 0:
        raise MediaError(
            "Clip timestamps must be non-negative",
            MediaErrorCode.INVALID_TIMESTAMPS,
            {"t0": request.t0, "t1": request.t1},
        )
    if request.t0 >= request.t1:
        raise MediaError(
            "Clip start time must be before end time",
            MediaErrorCode.INVALID_TIMESTAMPS,
            {"t0": request.t0, "t1": request.t1},
        )

    log_step("Clip", f"Probing replay buffer: {buffer_path.name}")
    buffer_info = await runner.probe(buffer_path)
    log_step("Clip", f"Buffer duration: {buffer_info.duration:.2f}s")

    offsets = calculate_buffer_offsets(
        request.t0,
        request.t1,
        request.session_started_at_ms,
        request.replay_buffer_saved_at_ms,
        request.replay_buffer_seconds,
        actual_buffer_duration=buffer_info.duration,
    )
    log_step(
        "Clip",
        f"Offsets: {offsets.start_offset:.2f}s → {offsets.end_offset:.2f}s "
        f"({offsets.clip_duration:.2f}s)",
    )

    artifact = await _produce(
        runner,
        buffer_path,
        Path(request.session_dir),
        request.artifact_id,
        offsets.start_offset,
        offsets.end_offset,
        profile_name=request.profile,
        fmt=request.format,
        thumbnail_width=request.thumbnail_width,
        thumbnail_quality=request.thumbnail_quality,
        on_progress=on_progress,
    )
    return artifact.model_copy(update={"t0": request.t0, "t1": request.t1})


async def extract_clip_direct(
    runner: MediaRunner,
    input_path: Path | str,
    output_dir: Path | str,
    artifact_id: str,
    start_offset: float,
    end_offset: float,
    *,
    profile: str = "archive",
    fmt: str | None = None,
) -> ClipArtifact:
    """Extract a clip when the offsets inside ``input_path`` are already known."""
    input_path = Path(input_path)
    if not input_path.exists():
        raise MediaError(
            f"Input file not found: {input_path}",
            MediaErrorCode.INPUT_FILE_NOT_FOUND,
            {"input_path": str(input_path)},
        )
    if start_offset < 0 or end_offset - start_offset <= 0:
        raise MediaError(
            "Invalid offsets: end must be after start",
            MediaErrorCode.INVALID_TIMESTAMPS,
            {"start_offset": start_offset, "end_offset": end_offset},
        )
    return await _produce(
        runner,
        input_path,
        Path(output_dir),
        artifact_id,
        start_offset,
        end_offset,
        profile_name=profile,
        fmt=fmt,
    )


async def _produce(
    runner: MediaRunner,
    input_path: Path,
    base_dir: Path,
    artifact_id: str,
    start_offset: float,
    end_offset: float,
    *,
    profile_name: str,
    fmt: str | None,
    thumbnail_width: int = 640,
    thumbnail_quality: int = 5,
    on_progress: ProgressCallback | None = None,
) -> ClipArtifact:
    try:
        profile = get_profile(profile_name)
    except ValueError as e:
        raise MediaError(str(e), MediaErrorCode.TRIM_FAILED, {"profile": profile_name}) from e
    clips_dir, thumbnails_dir = prepare_output_dirs(base_dir)
    duration = end_offset - start_offset

    clip_path = clips_dir / f"{artifact_id}.{fmt or profile.format}"
    thumbnail_path = thumbnails_dir / f"{artifact_id}.jpg"

    try:
        await runner.trim(
            input_path, clip_path, start_offset, duration, profile, on_progress=on_progress
        )
    except MediaError:
        clip_path.unlink(missing_ok=True)
        raise

    thumbnail_error = None
    try:
        await runner.thumbnail(
            clip_path,
            thumbnail_path,
            duration / 2,
            width=thumbnail_width,
            quality=thumbnail_quality,
        )
    except MediaError as e:
        log_warning(f"Clip {artifact_id} saved without thumbnail: {e}")
        thumbnail_error = ErrorInfo(message=str(e), code=e.code.value)

    metadata = None
    try:
        metadata = await runner.probe(clip_path)
    except MediaError as e:
        log_warning(f"Could not probe clip {clip_path.name}: {e}")

    log_success(f"Clip ready: {clip_path}")
    return ClipArtifact(
        artifact_id=artifact_id,
        clip_path=str(clip_path),
        thumbnail_path=None if thumbnail_error else str(thumbnail_path),
        t0=start_offset,
        t1=end_offset,
        duration_seconds=duration,
        start_offset=start_offset,
        end_offset=end_offset,
        profile=profile.name,
        metadata=metadata,
        thumbnail_error=thumbnail_error,
    )
