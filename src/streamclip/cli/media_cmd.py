"""streamclip media — check the encoder tools."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console

from streamclip.media.ffmpeg import MediaRunner
from streamclip.models.config import CaptureConfig
from streamclip.models.media import OUTPUT_PROFILES
from streamclip.utils.progress import key_value_table

console = Console()

READY_ICONS = {True: "[green]✓[/green]", False: "[red]✗[/red]"}


@click.command()
@click.pass_obj
def media_cmd(config: CaptureConfig) -> None:
    """Show ffmpeg/ffprobe availability and clip settings."""
    runner = MediaRunner(config.media.ffmpeg_path, config.media.ffprobe_path)
    status = asyncio.run(runner.availability())

    console.print(key_value_table("Media tools", {
        "ffmpeg": f"{READY_ICONS[status.ffmpeg]} {runner.ffmpeg_path}",
        "ffprobe": f"{READY_ICONS[status.ffprobe]} {runner.ffprobe_path}",
        "Clip format": config.media.clip_format
        or f"{OUTPUT_PROFILES[config.media.profile].format} (profile default)",
        "Profile": config.media.profile,
        "Available profiles": ", ".join(OUTPUT_PROFILES),
    }))
    if not status.ready:
        raise SystemExit(1)
