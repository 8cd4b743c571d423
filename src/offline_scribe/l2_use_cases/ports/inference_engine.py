"""Port: native speech-inference engine (context, per-call state, hooks)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import numpy as np

from offline_scribe.l1_entities.native_params import ContextParams, NativeParams
from offline_scribe.l1_entities.transcript import SegmentEvent


@dataclass(frozen=True)
class NativeHooks:
    """Callbacks the engine invokes re-entrantly from inside ``InferenceState.full``."""

    progress: Callable[[int], None] | None = None
    new_segment: Callable[[SegmentEvent], None] | None = None
    abort: Callable[[], bool] | None = None


class InferenceState(Protocol):
    """Call-scoped mutable workspace for one transcription pass."""

    def full(self, params: NativeParams, samples: np.ndarray, hooks: NativeHooks) -> None:
        """Run blocking full inference over float32 *samples*."""
        ...

    def segment_count(self) -> int: ...

    def segment_text(self, index: int) -> str:
        """Segment text, lossily decoded."""
        ...

    def segment_start(self, index: int) -> int: ...

    def segment_stop(self, index: int) -> int: ...


class InferenceContext(Protocol):
    """Loaded-model handle. Read-shared across calls; spawns per-call states."""

    def create_state(self) -> InferenceState: ...

    def close(self) -> None:
        """Release the loaded model."""
        ...


class InferenceEngine(Protocol):
    """Loader for inference contexts. Raises ``NativeFault`` when native code dies."""

    def install_tracing(self) -> None:
        """Route native diagnostic output into host logging. Idempotent."""
        ...

    def load(self, model_path: Path, params: ContextParams) -> InferenceContext: ...
