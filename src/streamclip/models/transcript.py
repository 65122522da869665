"""Transcript data models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Word(BaseModel):
    """A single transcribed word with timing."""

    word: str
    start: float
    end: float
    confidence: float = 0.0
    speaker: int | None = None
    punctuated_word: str | None = None


class TranscriptSegment(BaseModel):
    """One utterance as reported by the streaming provider.

    Times are seconds from session start.
    """

    speaker_id: str | None = None
    text: str
    t0: float
    t1: float
    confidence: float = 0.0
    is_final: bool = False
    words: list[Word] = Field(default_factory=list)

    @property
    def duration(self) -> float:
        return self.t1 - self.t0
