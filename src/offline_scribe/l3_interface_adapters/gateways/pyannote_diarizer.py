"""Gateway: pyannote.audio speaker diarization — implements Diarizer port.

Optional capability: only wired when ``pyannote.audio`` is installed
(``pip install offline-scribe[diarize]``).
"""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from typing import Any

from offline_scribe.l1_entities.transcript import SpeakerSpan

log = logging.getLogger('osc.diarize')

# pyannote/speaker-diarization-3.1 defaults
DEFAULT_HYPERPARAMETERS: dict = {
    'segmentation': {'min_duration_off': 0.0},
    'clustering': {'method': 'centroid', 'min_cluster_size': 12, 'threshold': 0.7045654963945799},
}


def diarization_available() -> bool:
    """True when pyannote.audio can be imported."""
    try:
        return importlib.util.find_spec('pyannote.audio') is not None
    except ModuleNotFoundError:
        return False


class PyannoteDiarizer:
    """Builds a SpeakerDiarization pipeline per model pair and caches it."""

    def __init__(self, hyperparameters: dict | None = None) -> None:
        self._hyperparameters = hyperparameters or DEFAULT_HYPERPARAMETERS
        self._pipelines: dict[tuple[str, str], Any] = {}

    def _pipeline(self, vad_model_path: Path, speaker_model_path: Path) -> Any:
        key = (str(vad_model_path), str(speaker_model_path))
        if key not in self._pipelines:
            from pyannote.audio.pipelines import (  # noqa: PLC0415 -- deferred: optional heavy dependency
                SpeakerDiarization,
            )

            log.debug('building diarization pipeline vad=%s speaker=%s', *key)
            pipeline = SpeakerDiarization(segmentation=key[0], embedding=key[1])
            pipeline.instantiate(self._hyperparameters)
            self._pipelines[key] = pipeline
        return self._pipelines[key]

    def compute_spans(self, vad_model_path: Path, speaker_model_path: Path, audio_path: Path) -> list[SpeakerSpan]:
        for path in (vad_model_path, speaker_model_path):
            if not path.exists():
                raise FileNotFoundError(f'Diarization model not found: {path}')

        annotation = self._pipeline(vad_model_path, speaker_model_path)(str(audio_path))
        spans = [
            SpeakerSpan(start=turn.start, stop=turn.end, speaker=str(speaker))
            for turn, _, speaker in annotation.itertracks(yield_label=True)
        ]
        spans.sort(key=lambda s: s.start)
        log.debug('diarization produced %d spans', len(spans))
        return spans
