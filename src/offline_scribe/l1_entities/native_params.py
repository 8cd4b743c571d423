"""Native engine parameter sets — plain data mirroring whisper.cpp's params."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel


class SamplingStrategy(enum.IntEnum):
    GREEDY = 0
    BEAM_SEARCH = 1


class ContextParams(BaseModel):
    """Load-time parameters of an inference context."""

    use_gpu: bool = False
    gpu_device: int = 0


class NativeParams(BaseModel):
    """Full-inference parameters handed to ``InferenceState.full``.

    ``None`` fields are left out of ``engine_kwargs()`` so the engine default applies.
    """

    strategy: SamplingStrategy = SamplingStrategy.GREEDY
    language: str = 'auto'
    translate: bool | None = None
    token_timestamps: bool = False
    split_on_word: bool | None = None
    max_len: int | None = None
    temperature: float | None = None
    n_max_text_ctx: int | None = None
    initial_prompt: str | None = None
    n_threads: int | None = None
    print_special: bool = False
    print_progress: bool = False
    print_realtime: bool = False
    print_timestamps: bool = False
    suppress_blank: bool = False

    def engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for the engine, excluding the sampling strategy and unset fields."""
        return self.model_dump(exclude={'strategy'}, exclude_none=True)
