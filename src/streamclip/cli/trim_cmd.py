"""streamclip trim — cut a clip at known offsets."""

from __future__ import annotations

import asyncio
import uuid

import click
from rich.console import Console

from streamclip.clipping.extract import extract_clip_direct
from streamclip.media.ffmpeg import MediaError, MediaRunner
from streamclip.models.config import CaptureConfig
from streamclip.models.media import OUTPUT_PROFILES
from streamclip.utils.progress import key_value_table, log_error, log_warning

console = Console()


@click.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", "start_offset", type=float, required=True, help="Start offset (s)")
@click.option("--end", "end_offset", type=float, required=True, help="End offset (s)")
@click.option(
    "--output", "-o",
    "output_dir",
    default=".",
    type=click.Path(file_okay=False),
    help="Directory receiving clips/ and thumbnails/",
)
@click.option("--artifact-id", default=None, help="Output file stem (default: random UUID)")
@click.option(
    "--profile",
    type=click.Choice(list(OUTPUT_PROFILES)),
    default=None,
    help="Output profile (default from config)",
)
@click.option("--format", "fmt", type=click.Choice(["mp4", "webm", "mov"]), default=None)
@click.pass_obj
def trim_cmd(
    config: CaptureConfig,
    input_path: str,
    start_offset: float,
    end_offset: float,
    output_dir: str,
    artifact_id: str | None,
    profile: str | None,
    fmt: str | None,
) -> None:
    """Extract INPUT_PATH[start:end] with a thumbnail."""
    runner = MediaRunner(config.media.ffmpeg_path, config.media.ffprobe_path)
    try:
        artifact = asyncio.run(extract_clip_direct(
            runner,
            input_path,
            output_dir,
            artifact_id or str(uuid.uuid4()),
            start_offset,
            end_offset,
            profile=profile or config.media.profile,
            fmt=fmt,
        ))
    except MediaError as e:
        log_error(f"[{e.code.value}] {e}")
        raise SystemExit(1)

    if artifact.thumbnail_error:
        log_warning(f"No thumbnail: {artifact.thumbnail_error.message}")

    rows = {
        "Artifact": artifact.artifact_id,
        "Clip": artifact.clip_path,
        "Thumbnail": artifact.thumbnail_path or "—",
        "Duration": f"{artifact.duration_seconds:.2f}s",
        "Profile": artifact.profile,
    }
    if artifact.metadata:
        m = artifact.metadata
        rows["Video"] = f"{m.codec} {m.width}x{m.height} @ {m.fps}"
    console.print(key_value_table("Clip", rows))
