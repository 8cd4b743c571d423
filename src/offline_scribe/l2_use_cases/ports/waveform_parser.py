"""Port: waveform parsing of normalized audio."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np


class WaveformParser(Protocol):
    def parse_file(self, path: Path) -> np.ndarray:
        """Return the int16 samples of a normalized WAV file."""
        ...
