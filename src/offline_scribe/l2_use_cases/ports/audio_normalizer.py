"""Port: audio normalization into fixed-format PCM WAV."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class AudioNormalizer(Protocol):
    """Decodes and resamples any source audio into 16 kHz mono 16-bit WAV."""

    def normalize(self, source: Path, dest: Path) -> None:
        """Write the normalized audio of *source* to *dest*. Raises on failure."""
        ...
