"""Clip, profile and result models for the media pipeline."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class OutputProfile(BaseModel):
    """Encoder settings for a clip output."""

    name: str
    format: str  # mp4 | webm | mov
    video_codec: str
    audio_codec: str
    output_options: list[str] = Field(default_factory=list)


OUTPUT_PROFILES: dict[str, OutputProfile] = {
    # High quality archive format
    "archive": OutputProfile(
        name="archive",
        format="mp4",
        video_codec="libx264",
        audio_codec="aac",
        output_options=["-preset", "medium", "-crf", "18", "-movflags", "+faststart"],
    ),
    # Social platforms (X, Instagram)
    "social": OutputProfile(
        name="social",
        format="mp4",
        video_codec="libx264",
        audio_codec="aac",
        output_options=[
            "-preset", "fast",
            "-crf", "23",
            "-maxrate", "8M",
            "-bufsize", "16M",
            "-movflags", "+faststart",
        ],
    ),
    "web": OutputProfile(
        name="web",
        format="webm",
        video_codec="libvpx-vp9",
        audio_codec="libopus",
        output_options=["-crf", "30", "-b:v", "0", "-deadline", "good"],
    ),
}


def get_profile(name: str) -> OutputProfile:
    try:
        return OUTPUT_PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown output profile: {name} "
            f"(expected one of {', '.join(OUTPUT_PROFILES)})"
        ) from None


class ErrorInfo(BaseModel):
    """A failure reported back to the caller instead of raised."""

    message: str
    code: str | None = None


class BufferOffsets(BaseModel):
    """Clip position inside the saved replay buffer file, in seconds."""

    start_offset: float
    end_offset: float
    clip_duration: float


class ClipMetadata(BaseModel):
    """Probed properties of a produced clip."""

    duration: float
    width: int
    height: int
    codec: str
    fps: str
    bitrate: int
    format: str


class ClipArtifact(BaseModel):
    """A clip produced from the replay buffer."""

    artifact_id: str
    clip_path: str
    thumbnail_path: str | None = None
    t0: float
    t1: float
    duration_seconds: float
    start_offset: float
    end_offset: float
    profile: str = "archive"
    metadata: ClipMetadata | None = None
    thumbnail_error: ErrorInfo | None = None

    @model_validator(mode="after")
    def _check_window(self) -> "ClipArtifact":
        if self.t0 >= self.t1:
            raise ValueError(f"clip window is empty: t0={self.t0} t1={self.t1}")
        return self

    @property
    def complete(self) -> bool:
        """True when both the clip and its thumbnail were produced."""
        return self.thumbnail_path is not None


class MediaToolStatus(BaseModel):
    ffmpeg: bool
    ffprobe: bool

    @property
    def ready(self) -> bool:
        return self.ffmpeg and self.ffprobe
