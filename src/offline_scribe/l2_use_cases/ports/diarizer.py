"""Port: speaker diarization (optional capability)."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from offline_scribe.l1_entities.transcript import SpeakerSpan


class Diarizer(Protocol):
    """Computes speaker-labeled spans from a voice-activity and a speaker-embedding model."""

    def compute_spans(self, vad_model_path: Path, speaker_model_path: Path, audio_path: Path) -> list[SpeakerSpan]:
        """Return spans ordered by start time."""
        ...
