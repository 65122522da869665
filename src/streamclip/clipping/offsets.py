"""Map session-relative clip times into the saved replay buffer.

The replay buffer holds the last N seconds before it was saved::

    session start                                        buffer saved
    |----------------------|~~~~~ clip ~~~~~|-------------------|
                           t0               t1
              |<--------------- buffer (N seconds) ------------>|
              buffer start = saved_at - N

    start_offset = clip start - buffer start
"""

from __future__ import annotations

from streamclip.media.ffmpeg import MediaError, MediaErrorCode
from streamclip.models.media import BufferOffsets


def effective_buffer_duration(
    replay_buffer_seconds: float,
    actual_buffer_duration: float | None = None,
) -> float:
    """The probed duration when it is usable, else the configured one.

    The tool may flush a shorter buffer than configured, e.g. shortly after
    it started recording.
    """
    if actual_buffer_duration is not None and actual_buffer_duration > 0:
        return float(actual_buffer_duration)
    return float(replay_buffer_seconds)


def calculate_buffer_offsets(
    t0: float,
    t1: float,
    session_started_at_ms: int,
    replay_buffer_saved_at_ms: int,
    replay_buffer_seconds: float,
    actual_buffer_duration: float | None = None,
) -> BufferOffsets:
    """Compute where ``[t0, t1]`` lies inside the buffer file.

    Raises MediaError(INVALID_TIMESTAMPS) when the window cannot be served
    from the buffer. Retrying with the same inputs gives the same result.
    """
    buffer_duration = effective_buffer_duration(replay_buffer_seconds, actual_buffer_duration)
    details = {
        "t0": t0,
        "t1": t1,
        "session_started_at_ms": session_started_at_ms,
        "replay_buffer_saved_at_ms": replay_buffer_saved_at_ms,
        "buffer_duration": buffer_duration,
    }
    if buffer_duration <= 0:
        raise MediaError(
            "Replay buffer duration must be positive",
            MediaErrorCode.INVALID_TIMESTAMPS,
            details,
        )

    clip_start_abs = session_started_at_ms + t0 * 1000
    clip_end_abs = session_started_at_ms + t1 * 1000
    buffer_start_abs = replay_buffer_saved_at_ms - buffer_duration * 1000

    start_offset = max(0.0, (clip_start_abs - buffer_start_abs) / 1000)
    end_offset = min(buffer_duration, (clip_end_abs - buffer_start_abs) / 1000)
    details.update(start_offset=start_offset, end_offset=end_offset)

    if start_offset >= buffer_duration:
        raise MediaError(
            "Clip start is beyond the end of the replay buffer",
            MediaErrorCode.INVALID_TIMESTAMPS,
            details,
        )
    if end_offset <= 0:
        raise MediaError(
            "Clip end is before the replay buffer starts; the moment rolled off the buffer",
            MediaErrorCode.INVALID_TIMESTAMPS,
            details,
        )
    if start_offset >= end_offset:
        raise MediaError(
            "Invalid clip timestamps: start must be before end",
            MediaErrorCode.INVALID_TIMESTAMPS,
            details,
        )

    start_offset = min(max(start_offset, 0.0), buffer_duration)
    end_offset = min(max(end_offset, 0.0), buffer_duration)
    return BufferOffsets(
        start_offset=start_offset,
        end_offset=end_offset,
        clip_duration=end_offset - start_offset,
    )
