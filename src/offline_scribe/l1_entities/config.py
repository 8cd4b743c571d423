"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from pydantic import BaseModel, model_validator

from offline_scribe.l1_entities.options import DiarizeOptions, TranscribeOptions


class ModelConfig(BaseModel):
    name: str
    use_gpu: bool | None = None  # None = resolve from GPU capability flags
    gpu_device: int | None = None
    isolated: bool = True  # run the engine in a child process


class TranscriptionConfig(BaseModel):
    lang: str | None = None
    translate: bool = False
    word_timestamps: bool = False
    max_sentence_len: int | None = None
    temperature: float | None = None
    max_text_ctx: int | None = None
    init_prompt: str | None = None
    n_threads: int | None = None

    def options_for(self, path: str) -> TranscribeOptions:
        """Build request options for *path* from these defaults."""
        return TranscribeOptions(path=path, **self.model_dump())


class DiarizationConfig(BaseModel):
    vad_model_path: str | None = None
    speaker_model_path: str | None = None

    @model_validator(mode='after')
    def _check_paired(self) -> DiarizationConfig:
        if bool(self.vad_model_path) != bool(self.speaker_model_path):
            missing = 'speaker_model_path' if self.vad_model_path else 'vad_model_path'
            raise ValueError(f'diarization needs both vad_model_path and speaker_model_path; {missing} is not set')
        return self

    def to_options(self) -> DiarizeOptions | None:
        """Return diarization options when the model paths are set, else None."""
        if self.vad_model_path and self.speaker_model_path:
            return DiarizeOptions(
                vad_model_path=self.vad_model_path,
                speaker_id_model_path=self.speaker_model_path,
            )
        return None


class NormalizationConfig(BaseModel):
    ffmpeg_timeout: int


class AppConfig(BaseModel):
    model: ModelConfig
    transcription: TranscriptionConfig
    diarization: DiarizationConfig
    normalization: NormalizationConfig
