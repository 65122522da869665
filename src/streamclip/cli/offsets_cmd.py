"""streamclip offsets — where a clip falls inside a saved replay buffer."""

from __future__ import annotations

import click
from rich.console import Console

from streamclip.clipping.offsets import calculate_buffer_offsets, effective_buffer_duration
from streamclip.media.ffmpeg import MediaError
from streamclip.models.config import CaptureConfig
from streamclip.utils.progress import key_value_table, log_error

console = Console()


@click.command()
@click.option("--t0", type=float, required=True, help="Clip start (session seconds)")
@click.option("--t1", type=float, required=True, help="Clip end (session seconds)")
@click.option("--session-start", type=int, required=True, help="Session start (epoch ms)")
@click.option("--saved-at", type=int, required=True, help="Replay buffer save time (epoch ms)")
@click.option("--buffer-seconds", type=float, default=None, help="Nominal buffer length")
@click.option("--actual-duration", type=float, default=None, help="Probed buffer duration")
@click.pass_obj
def offsets_cmd(
    config: CaptureConfig,
    t0: float,
    t1: float,
    session_start: int,
    saved_at: int,
    buffer_seconds: float | None,
    actual_duration: float | None,
) -> None:
    """Compute start/end offsets inside the replay buffer file."""
    nominal = buffer_seconds if buffer_seconds is not None else config.obs.replay_buffer_seconds
    try:
        offsets = calculate_buffer_offsets(
            t0, t1, session_start, saved_at, nominal, actual_duration
        )
    except MediaError as e:
        log_error(f"[{e.code.value}] {e}")
        raise SystemExit(1)

    console.print(key_value_table("Buffer offsets", {
        "Buffer duration": f"{effective_buffer_duration(nominal, actual_duration):.3f}s",
        "Start offset": f"{offsets.start_offset:.3f}s",
        "End offset": f"{offsets.end_offset:.3f}s",
        "Clip duration": f"{offsets.clip_duration:.3f}s",
    }))
