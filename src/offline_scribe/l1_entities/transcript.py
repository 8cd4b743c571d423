"""Transcript entities: segments, diarization spans, and the assembled transcript."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

CENTISECONDS_PER_SECOND = 100


def format_wall_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS for wall-clock display."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f'{hours:02d}:{minutes:02d}:{secs:02d}'


class Segment(BaseModel):
    """One contiguous span of recognized speech.

    ``start`` / ``stop`` are engine time units (whisper centiseconds).
    """

    text: str
    start: int = Field(ge=0)
    stop: int = Field(ge=0)
    speaker: str | None = None

    @model_validator(mode='after')
    def _check_order(self) -> Segment:
        if self.start > self.stop:
            raise ValueError(f'segment start {self.start} is after stop {self.stop}')
        return self

    @property
    def start_sec(self) -> float:
        return self.start / CENTISECONDS_PER_SECOND

    @property
    def stop_sec(self) -> float:
        return self.stop / CENTISECONDS_PER_SECOND


class SegmentEvent(BaseModel):
    """Payload handed to the per-segment callback while inference is running."""

    index: int
    start: int
    stop: int
    text: str


class SpeakerSpan(BaseModel):
    """A speaker-labeled time span produced by diarization, in seconds."""

    start: float
    stop: float
    speaker: str


class Transcript(BaseModel):
    """Ordered segments in engine emission order plus inference wall-clock time."""

    segments: list[Segment] = Field(min_length=1)
    processing_time_sec: float = Field(ge=0.0)

    @property
    def speakers(self) -> list[str]:
        """Distinct speaker labels in order of first appearance."""
        seen: list[str] = []
        for seg in self.segments:
            if seg.speaker is not None and seg.speaker not in seen:
                seen.append(seg.speaker)
        return seen
