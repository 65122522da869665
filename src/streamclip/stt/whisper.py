"""Local Whisper streaming provider (stub)."""

from __future__ import annotations

from streamclip.models.config import SttConfig


class WhisperProvider:
    """Transcription with a locally loaded Whisper model."""

    name = "whisper"

    def __init__(self, config: SttConfig | None = None, **kwargs) -> None:
        raise NotImplementedError(
            "Whisper provider not yet implemented. "
            "Use stt.provider='deepgram' in config."
        )
