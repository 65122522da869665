"""Fallback lookup of the newest replay-buffer file on disk."""

from __future__ import annotations

import time
from pathlib import Path

from streamclip.utils.progress import log_warning

REPLAY_EXTENSIONS = {".mp4", ".mkv", ".flv", ".mov", ".ts"}


def find_latest_replay_buffer(
    directory: Path | str,
    max_age_seconds: float = 30,
    *,
    now: float | None = None,
) -> Path | None:
    """Return the newest video file in ``directory`` younger than ``max_age_seconds``.

    Used when the save notification never arrived. Directory errors are
    logged and reported as "nothing found".
    """
    now = time.time() if now is None else now
    newest: tuple[float, Path] | None = None
    try:
        for entry in Path(directory).iterdir():
            if entry.suffix.lower() not in REPLAY_EXTENSIONS or not entry.is_file():
                continue
            mtime = entry.stat().st_mtime
            if now - mtime > max_age_seconds:
                continue
            if newest is None or mtime > newest[0]:
                newest = (mtime, entry)
    except OSError as e:
        log_warning(f"Could not scan replay output directory {directory}: {e}")
        return None
    return newest[1] if newest else None
