"""Read audio files as raw PCM chunks for the transcription stream."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import soundfile as sf


@dataclass
class PcmFormat:
    sample_rate: int
    channels: int
    frames: int

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate if self.sample_rate else 0.0


def pcm_format(path: Path | str) -> PcmFormat:
    info = sf.info(str(path))
    return PcmFormat(sample_rate=info.samplerate, channels=info.channels, frames=info.frames)


def pcm_chunks(path: Path | str, chunk_ms: int = 100) -> Iterator[bytes]:
    """Yield interleaved 16-bit little-endian PCM, ``chunk_ms`` at a time."""
    fmt = pcm_format(path)
    blocksize = max(1, fmt.sample_rate * chunk_ms // 1000)
    for block in sf.blocks(str(path), blocksize=blocksize, dtype="int16", always_2d=True):
        yield block.astype("<i2", copy=False).tobytes()
