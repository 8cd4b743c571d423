"""Gateway: audio normalizer — converts any audio format to 16 kHz mono WAV via ffmpeg."""

from __future__ import annotations

import shutil
import subprocess  # noqa: S404 -- intentional: shells out to ffmpeg with a fixed arg list, not shell=True
from pathlib import Path

from offline_scribe.l1_entities.audio_constants import CHANNELS, SAMPLE_RATE

_FFMPEG_TIMEOUT = 300  # seconds


class FfmpegAudioNormalizer:
    """Implements the AudioNormalizer port.

    Supports any format ffmpeg can decode: WAV, FLAC, MP3, M4A, OGG, MP4, etc.
    """

    def __init__(self, timeout: int = _FFMPEG_TIMEOUT) -> None:
        self._timeout = timeout

    def normalize(self, source: Path, dest: Path) -> None:
        """Write *source* to *dest* as 16-bit PCM WAV at 16 kHz mono.

        Raises:
            FileNotFoundError: source file does not exist.
            RuntimeError: ffmpeg is missing, conversion failed, timed out, or
                          produced no audio.
        """
        if not source.exists():
            raise FileNotFoundError(f'Audio file not found: {source}')

        if shutil.which('ffmpeg') is None:
            raise RuntimeError(
                'ffmpeg is required but not found on PATH.\n  macOS:  brew install ffmpeg\n  Debian: apt install ffmpeg'
            )

        cmd = [
            'ffmpeg',
            '-y',
            '-i',
            str(source),
            '-ar',
            str(SAMPLE_RATE),
            '-ac',
            str(CHANNELS),
            '-c:a',
            'pcm_s16le',
            '-v',
            'error',
            str(dest),
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self._timeout)  # noqa: S603
        except subprocess.TimeoutExpired as exc:
            raise RuntimeError(f'ffmpeg timed out after {self._timeout}s processing: {source}') from exc
        except OSError as exc:
            raise RuntimeError(f'Failed to launch ffmpeg: {exc}') from exc

        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            raise RuntimeError(f'ffmpeg exited with code {result.returncode} for: {source}\n{stderr}')

        if not dest.exists() or dest.stat().st_size == 0:
            raise RuntimeError(f'ffmpeg produced no audio output for: {source}')
