"""Use case: one blocking transcription pass over an audio file.

Stages: validate → normalize → decode → acquire state → configure →
execute → extract → (diarize) → cleanup. Every stage failure aborts the
rest with a typed ``TranscriptionError``; the temporary normalized audio is
removed on every exit path once created.
"""

from __future__ import annotations

import logging
import tempfile
import time
from collections.abc import Callable
from pathlib import Path

import numpy as np

from offline_scribe.l1_entities.audio_constants import INT16_SCALE
from offline_scribe.l1_entities.errors import (
    CleanupError,
    DiarizationError,
    EmptyResultError,
    ExtractionError,
    InferenceError,
    NotFoundError,
    PreprocessError,
    StateError,
)
from offline_scribe.l1_entities.options import DiarizeOptions, TranscribeOptions
from offline_scribe.l1_entities.transcript import Segment, Transcript
from offline_scribe.l2_use_cases.ports.audio_normalizer import AudioNormalizer
from offline_scribe.l2_use_cases.ports.diarizer import Diarizer
from offline_scribe.l2_use_cases.ports.inference_engine import InferenceContext, InferenceState
from offline_scribe.l2_use_cases.ports.waveform_parser import WaveformParser
from offline_scribe.l2_use_cases.progress_bridge import (
    PROGRESS_REGISTRY,
    ProgressRegistry,
    TranscribeCallbacks,
    wire_callbacks,
)
from offline_scribe.l2_use_cases.utils.fault_boundary import fault_boundary
from offline_scribe.l2_use_cases.utils.params_builder import build_native_params
from offline_scribe.l2_use_cases.utils.transcript_assembler import assemble_transcript, merge_diarization

log = logging.getLogger('osc.transcribe')


def int_to_float_audio(samples: np.ndarray) -> np.ndarray:
    """Convert int16 PCM samples into the float32 [-1, 1) range the engine expects."""
    return samples.astype(np.float32) / INT16_SCALE


class TranscribeFileUseCase:
    """Drives a single transcription pass against an already loaded context.

    Diarization is a capability: with no *diarizer* injected, requested
    diarization is skipped and segments keep ``speaker=None``.
    """

    def __init__(
        self,
        normalizer: AudioNormalizer,
        waveform_parser: WaveformParser,
        diarizer: Diarizer | None = None,
        progress_registry: ProgressRegistry = PROGRESS_REGISTRY,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._normalizer = normalizer
        self._parser = waveform_parser
        self._diarizer = diarizer
        self._registry = progress_registry
        self._clock = clock

    @property
    def can_diarize(self) -> bool:
        return self._diarizer is not None

    def create_normalized_audio(self, source: Path) -> Path:
        """Normalize *source* into a fresh temporary WAV. Removes it again on failure."""
        with tempfile.NamedTemporaryFile(suffix='.wav', delete=False) as tmp:
            out_path = Path(tmp.name)
        try:
            self._normalizer.normalize(source, out_path)
        except Exception as exc:
            _remove_quietly(out_path)
            raise PreprocessError(f'failed to normalize audio {source}: {exc}') from exc
        return out_path

    def execute(
        self,
        context: InferenceContext,
        options: TranscribeOptions,
        callbacks: TranscribeCallbacks | None = None,
        diarize_options: DiarizeOptions | None = None,
    ) -> Transcript:
        log.debug('Transcribe called with %r', options)

        source = Path(options.path)
        if not source.exists():
            raise NotFoundError(f'Audio file not found: {source}')

        out_path = self.create_normalized_audio(source)
        try:
            transcript = self._transcribe_normalized(context, options, callbacks, diarize_options, out_path)
        except BaseException:
            _remove_quietly(out_path)
            raise

        try:
            out_path.unlink()
        except OSError as exc:
            raise CleanupError(f'failed to remove temporary audio {out_path}: {exc}') from exc
        return transcript

    def _transcribe_normalized(
        self,
        context: InferenceContext,
        options: TranscribeOptions,
        callbacks: TranscribeCallbacks | None,
        diarize_options: DiarizeOptions | None,
        audio_path: Path,
    ) -> Transcript:
        try:
            original_samples = self._parser.parse_file(audio_path)
        except Exception as exc:
            raise PreprocessError(f'failed to decode normalized audio: {exc}', stage='decode') from exc
        samples = int_to_float_audio(original_samples)

        try:
            state = context.create_state()
        except Exception as exc:
            raise StateError(f'failed to create inference state: {exc}') from exc

        params = build_native_params(options)

        with wire_callbacks(callbacks, self._registry) as hooks:
            log.debug('setting state full...')
            started = self._clock()
            with fault_boundary('inference', InferenceError, 'failed to transcribe'):
                state.full(params, samples, hooks)
            elapsed = max(0.0, self._clock() - started)

        segments = _extract_segments(state)
        transcript = assemble_transcript(segments, processing_time_sec=elapsed)

        if diarize_options is not None:
            transcript = self._diarize(transcript, diarize_options, audio_path)
        return transcript

    def _diarize(self, transcript: Transcript, options: DiarizeOptions, audio_path: Path) -> Transcript:
        if self._diarizer is None:
            log.info('Diarization requested but not available; segments keep no speaker')
            return transcript
        try:
            spans = self._diarizer.compute_spans(
                Path(options.vad_model_path),
                Path(options.speaker_id_model_path),
                audio_path,
            )
        except Exception as exc:
            raise DiarizationError(f'failed to compute diarization: {exc}') from exc
        log.debug('diarize segments=%r', spans)
        return merge_diarization(transcript, spans)


def _extract_segments(state: InferenceState) -> list[Segment]:
    log.debug('getting segments count...')
    try:
        num_segments = state.segment_count()
    except Exception as exc:
        raise ExtractionError(f'failed to get number of segments: {exc}') from exc
    if num_segments == 0:
        raise EmptyResultError('no segments found')
    log.debug('found %d sentence segments', num_segments)

    segments: list[Segment] = []
    for i in range(num_segments):
        try:
            segments.append(
                Segment(
                    text=state.segment_text(i),
                    start=state.segment_start(i),
                    stop=state.segment_stop(i),
                )
            )
        except Exception as exc:
            raise ExtractionError(f'failed to read segment {i}: {exc}') from exc
    return segments


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        log.warning('Failed to remove temporary audio %s', path, exc_info=True)
