"""Request options: what the caller asks a single transcription pass to do."""

from __future__ import annotations

from pydantic import BaseModel


class TranscribeOptions(BaseModel):
    """User-facing configuration of one transcription pass.

    Every field except ``path`` is optional; ``None`` means "use the engine default".
    """

    path: str
    lang: str | None = None
    translate: bool | None = None
    word_timestamps: bool | None = None
    max_sentence_len: int | None = None
    temperature: float | None = None
    max_text_ctx: int | None = None
    init_prompt: str | None = None
    n_threads: int | None = None


class DiarizeOptions(BaseModel):
    """Model paths for speaker diarization; both are required together."""

    vad_model_path: str
    speaker_id_model_path: str
