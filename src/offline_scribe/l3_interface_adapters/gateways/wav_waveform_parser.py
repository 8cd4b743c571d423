"""Gateway: WAV waveform parser — reads normalized 16-bit mono PCM."""

from __future__ import annotations

import wave
from pathlib import Path

import numpy as np

from offline_scribe.l1_entities.audio_constants import CHANNELS, SAMPLE_WIDTH


class WavWaveformParser:
    """Implements the WaveformParser port."""

    def parse_file(self, path: Path) -> np.ndarray:
        with wave.open(str(path), 'rb') as wf:
            if wf.getsampwidth() != SAMPLE_WIDTH:
                raise ValueError(f'Expected 16-bit samples, got {wf.getsampwidth() * 8}-bit: {path}')
            if wf.getnchannels() != CHANNELS:
                raise ValueError(f'Expected mono audio, got {wf.getnchannels()} channels: {path}')
            frames = wf.readframes(wf.getnframes())
        return np.frombuffer(frames, dtype='<i2').astype(np.int16)
