"""streamclip events — replay a session's event log."""

from __future__ import annotations

from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from streamclip.events.log import EventLog
from streamclip.models.config import CaptureConfig
from streamclip.models.events import EventType
from streamclip.utils.progress import log_error

console = Console()

TYPE_STYLES = {
    EventType.SESSION_START: "bold green",
    EventType.SESSION_END: "bold red",
    EventType.TRANSCRIPT_SEGMENT: "dim",
    EventType.CLIP_INTENT_START: "yellow",
    EventType.CLIP_INTENT_END: "yellow",
    EventType.ARTIFACT_CLIP_CREATED: "cyan",
    EventType.ARTIFACT_FRAME_CREATED: "cyan",
}


def _summarize(payload: dict) -> str:
    if "text" in payload:
        speaker = payload.get("speakerId") or "?"
        return f"{speaker}: {payload['text']}"
    parts = []
    for key in ("t", "t0", "t1", "path", "duration", "clipCount", "title"):
        if key in payload:
            value = payload[key]
            parts.append(f"{key}={value:.2f}" if isinstance(value, float) else f"{key}={value}")
    return " ".join(parts)


@click.command()
@click.argument("session_id")
@click.option(
    "--type", "event_types",
    multiple=True,
    type=click.Choice([t.value for t in EventType]),
    help="Only show these event types",
)
@click.pass_obj
def events_cmd(config: CaptureConfig, session_id: str, event_types: tuple[str, ...]) -> None:
    """Show the events recorded for SESSION_ID."""
    log = EventLog(config.sessions_dir)
    path = log.path_for(session_id)
    if not path.exists():
        log_error(f"No event log for session {session_id}: {path}")
        raise SystemExit(1)

    table = Table(title=f"Session {session_id}", show_lines=False)
    table.add_column("Time", style="dim")
    table.add_column("Type")
    table.add_column("Details")

    count = 0
    for event in log.replay(session_id):
        if event_types and event.type.value not in event_types:
            continue
        ts = datetime.fromtimestamp(event.ts / 1000).strftime("%H:%M:%S")
        style = TYPE_STYLES.get(event.type, "")
        table.add_row(ts, f"[{style}]{event.type.value}[/{style}]" if style else event.type.value,
                      _summarize(event.payload))
        count += 1

    console.print(table)
    console.print(f"[dim]{count} event(s)[/dim]")
