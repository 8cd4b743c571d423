"""Domain error types.

Every failure of a transcription pass is a ``TranscriptionError`` subclass
carrying the pipeline stage it came from.
"""

from __future__ import annotations


class TranscriptionError(Exception):
    """Base class for failures of context creation or a transcription pass."""

    stage = 'transcribe'

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class NotFoundError(TranscriptionError, FileNotFoundError):
    """Raised when a model or audio path does not exist."""

    stage = 'validate'


class LoadError(TranscriptionError):
    """Raised when the engine rejects a model file."""

    stage = 'load'


class CrashError(TranscriptionError):
    """Raised when a native fault was caught at a fault boundary."""


class PreprocessError(TranscriptionError):
    """Raised when audio normalization or waveform decoding fails."""

    stage = 'normalize'


class StateError(TranscriptionError):
    """Raised when the context cannot allocate a per-call inference state."""

    stage = 'state'


class InferenceError(TranscriptionError):
    """Raised when the engine run itself fails."""

    stage = 'inference'


class EmptyResultError(TranscriptionError):
    """Raised when the engine produced zero segments."""

    stage = 'extract'


class ExtractionError(TranscriptionError):
    """Raised when a segment field cannot be read back from the engine."""

    stage = 'extract'


class DiarizationError(TranscriptionError):
    """Raised when the diarization collaborator fails."""

    stage = 'diarize'


class CleanupError(TranscriptionError):
    """Raised when the temporary normalized audio could not be removed."""

    stage = 'cleanup'


class NativeFault(Exception):
    """Raised by engine gateways when native code died instead of returning an error.

    Never escapes a fault boundary: it is converted into ``CrashError`` there.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ModelResolutionError(Exception):
    """Raised when a whisper model cannot be resolved to a local path."""
