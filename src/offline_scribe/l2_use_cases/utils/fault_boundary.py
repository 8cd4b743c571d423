"""Fault boundary around the two native call sites (context load, inference run)."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator

from offline_scribe.l1_entities.errors import CrashError, NativeFault, TranscriptionError


@contextlib.contextmanager
def fault_boundary(stage: str, error_cls: type[TranscriptionError], message: str) -> Iterator[None]:
    """Convert failures raised inside the block into typed transcription errors.

    ``NativeFault`` (native code died) becomes ``CrashError``; any other
    exception becomes *error_cls*. Transcription errors pass through untouched.
    """
    try:
        yield
    except NativeFault as exc:
        raise CrashError(f'{stage} crashed: {exc.detail}', stage=stage) from exc
    except TranscriptionError:
        raise
    except Exception as exc:
        raise error_cls(f'{message}: {exc}', stage=stage) from exc
