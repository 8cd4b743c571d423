"""Tests for TranscribeFileUseCase — drives the full pipeline with fakes."""

from __future__ import annotations

import itertools
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest

from offline_scribe.l1_entities.errors import (
    CleanupError,
    CrashError,
    DiarizationError,
    EmptyResultError,
    ExtractionError,
    InferenceError,
    NativeFault,
    NotFoundError,
    PreprocessError,
    StateError,
)
from offline_scribe.l1_entities.options import DiarizeOptions, TranscribeOptions
from offline_scribe.l1_entities.transcript import SegmentEvent, SpeakerSpan
from offline_scribe.l2_use_cases.progress_bridge import ProgressRegistry, TranscribeCallbacks
from offline_scribe.l2_use_cases.transcribe_file_use_case import TranscribeFileUseCase, int_to_float_audio
from tests.fakes import FakeContext, FakeDiarizer, FakeNormalizer, FakeState, FakeWaveformParser

_DIARIZE = DiarizeOptions(vad_model_path='/m/vad.onnx', speaker_id_model_path='/m/spk.onnx')


def _use_case(normalizer=None, parser=None, diarizer=None, registry=None, clock=None) -> TranscribeFileUseCase:
    kwargs = {}
    if clock is not None:
        kwargs['clock'] = clock
    return TranscribeFileUseCase(
        normalizer=normalizer or FakeNormalizer(),
        waveform_parser=parser or FakeWaveformParser(),
        diarizer=diarizer,
        progress_registry=registry or ProgressRegistry(),
        **kwargs,
    )


def _leftovers(tmpdir: Path) -> list[Path]:
    return list(tmpdir.glob('*.wav'))


class TestHappyPath:
    def test_returns_segments_in_emission_order(self, audio_file: Path, isolated_tmpdir: Path):
        state = FakeState([('Hello', 0, 150), (' there', 150, 300), (' friend', 300, 420)])
        transcript = _use_case().execute(FakeContext(state), TranscribeOptions(path=str(audio_file)))

        assert [s.text for s in transcript.segments] == ['Hello', ' there', ' friend']
        assert [(s.start, s.stop) for s in transcript.segments] == [(0, 150), (150, 300), (300, 420)]
        assert all(s.speaker is None for s in transcript.segments)
        assert transcript.processing_time_sec >= 0
        starts = [s.start for s in transcript.segments]
        assert starts == sorted(starts)
        assert all(s.start <= s.stop for s in transcript.segments)

    def test_processing_time_measures_inference_only(self, audio_file: Path, isolated_tmpdir: Path):
        clock = itertools.count(start=10.0, step=2.5)
        uc = _use_case(clock=lambda: next(clock))
        transcript = uc.execute(FakeContext(), TranscribeOptions(path=str(audio_file)))
        assert transcript.processing_time_sec == pytest.approx(2.5)

    def test_feeds_float_samples_and_built_params(self, audio_file: Path, isolated_tmpdir: Path):
        state = FakeState([('a', 0, 10)])
        parser = FakeWaveformParser(np.array([0, 16384, -32768], dtype=np.int16))
        _use_case(parser=parser).execute(
            FakeContext(state), TranscribeOptions(path=str(audio_file), lang='en', word_timestamps=True)
        )

        params, samples, _hooks = state.full_calls[0]
        assert samples.dtype == np.float32
        np.testing.assert_allclose(samples, [0.0, 0.5, -1.0])
        assert params.language == 'en'
        assert params.split_on_word is True
        assert params.token_timestamps is True

    def test_normalizes_source_into_wav_and_parses_it(self, audio_file: Path, isolated_tmpdir: Path):
        normalizer = FakeNormalizer()
        parser = FakeWaveformParser()
        _use_case(normalizer=normalizer, parser=parser).execute(FakeContext(), TranscribeOptions(path=str(audio_file)))

        source, dest = normalizer.calls[0]
        assert source == audio_file
        assert dest.suffix == '.wav'
        assert parser.calls == [dest]

    def test_temp_file_removed_after_success(self, audio_file: Path, isolated_tmpdir: Path):
        _use_case().execute(FakeContext(), TranscribeOptions(path=str(audio_file)))
        assert _leftovers(isolated_tmpdir) == []


class TestCallbacks:
    def test_progress_and_segment_callbacks_fire(self, audio_file: Path, isolated_tmpdir: Path):
        state = FakeState([('a', 0, 100), ('b', 100, 200)])
        progress: list[int] = []
        events: list[SegmentEvent] = []
        _use_case().execute(
            FakeContext(state),
            TranscribeOptions(path=str(audio_file)),
            callbacks=TranscribeCallbacks(progress=progress.append, new_segment=events.append),
        )
        assert progress == [50, 100]
        assert [e.text for e in events] == ['a', 'b']

    def test_sequential_runs_receive_only_their_own_progress(self, audio_file: Path, isolated_tmpdir: Path):
        registry = ProgressRegistry()
        uc = _use_case(registry=registry)
        first: list[int] = []
        second: list[int] = []

        uc.execute(
            FakeContext(FakeState([('a', 0, 1), ('b', 1, 2)])),
            TranscribeOptions(path=str(audio_file)),
            callbacks=TranscribeCallbacks(progress=first.append),
        )
        uc.execute(
            FakeContext(FakeState([('c', 0, 1), ('d', 1, 2), ('e', 2, 3), ('f', 3, 4)])),
            TranscribeOptions(path=str(audio_file)),
            callbacks=TranscribeCallbacks(progress=second.append),
        )

        assert first == [50, 100]
        assert second == [25, 50, 75, 100]
        assert registry.active_tokens() == []

    def test_abort_yields_partial_transcript(self, audio_file: Path, isolated_tmpdir: Path):
        state = FakeState([('a', 0, 100), ('b', 100, 200), ('c', 200, 300)])
        events: list[SegmentEvent] = []

        def _abort() -> bool:
            return len(events) >= 1

        transcript = _use_case().execute(
            FakeContext(state),
            TranscribeOptions(path=str(audio_file)),
            callbacks=TranscribeCallbacks(new_segment=events.append, abort=_abort),
        )
        assert [s.text for s in transcript.segments] == ['a']

    def test_abort_before_first_segment_is_empty_result(self, audio_file: Path, isolated_tmpdir: Path):
        with pytest.raises(EmptyResultError):
            _use_case().execute(
                FakeContext(FakeState([('a', 0, 100)])),
                TranscribeOptions(path=str(audio_file)),
                callbacks=TranscribeCallbacks(abort=lambda: True),
            )


class TestFailures:
    def test_missing_audio_raises_not_found_without_temp_file(self, tmp_path: Path, isolated_tmpdir: Path):
        normalizer = FakeNormalizer()
        ctx = FakeContext()
        with pytest.raises(NotFoundError, match='Audio file not found'):
            _use_case(normalizer=normalizer).execute(ctx, TranscribeOptions(path=str(tmp_path / 'missing.wav')))
        assert normalizer.calls == []
        assert ctx.create_state_calls == 0
        assert _leftovers(isolated_tmpdir) == []

    def test_normalize_failure_is_preprocess_error_and_cleans_up(self, audio_file: Path, isolated_tmpdir: Path):
        normalizer = FakeNormalizer(error=RuntimeError('ffmpeg exited with code 1'))
        with pytest.raises(PreprocessError, match='ffmpeg exited') as exc_info:
            _use_case(normalizer=normalizer).execute(FakeContext(), TranscribeOptions(path=str(audio_file)))
        assert exc_info.value.stage == 'normalize'
        assert _leftovers(isolated_tmpdir) == []

    def test_decode_failure_is_preprocess_error(self, audio_file: Path, isolated_tmpdir: Path):
        parser = FakeWaveformParser(error=ValueError('Expected mono audio'))
        with pytest.raises(PreprocessError, match='mono') as exc_info:
            _use_case(parser=parser).execute(FakeContext(), TranscribeOptions(path=str(audio_file)))
        assert exc_info.value.stage == 'decode'
        assert _leftovers(isolated_tmpdir) == []

    def test_state_allocation_failure(self, audio_file: Path, isolated_tmpdir: Path):
        ctx = FakeContext(state_error=RuntimeError('out of memory'))
        with pytest.raises(StateError, match='out of memory'):
            _use_case().execute(ctx, TranscribeOptions(path=str(audio_file)))
        assert _leftovers(isolated_tmpdir) == []

    def test_inference_failure(self, audio_file: Path, isolated_tmpdir: Path):
        ctx = FakeContext(FakeState(full_error=RuntimeError('whisper_full failed')))
        with pytest.raises(InferenceError, match='failed to transcribe: whisper_full failed'):
            _use_case().execute(ctx, TranscribeOptions(path=str(audio_file)))
        assert _leftovers(isolated_tmpdir) == []

    def test_inference_crash_is_crash_error(self, audio_file: Path, isolated_tmpdir: Path):
        ctx = FakeContext(FakeState(full_error=NativeFault('engine process killed by SIGABRT')))
        with pytest.raises(CrashError, match='SIGABRT') as exc_info:
            _use_case().execute(ctx, TranscribeOptions(path=str(audio_file)))
        assert exc_info.value.stage == 'inference'
        assert _leftovers(isolated_tmpdir) == []

    def test_progress_registration_released_after_failure(self, audio_file: Path, isolated_tmpdir: Path):
        registry = ProgressRegistry()
        ctx = FakeContext(FakeState(full_error=RuntimeError('boom')))
        with pytest.raises(InferenceError):
            _use_case(registry=registry).execute(
                ctx, TranscribeOptions(path=str(audio_file)), callbacks=TranscribeCallbacks(progress=lambda p: None)
            )
        assert registry.active_tokens() == []

    def test_zero_segments_is_failure(self, audio_file: Path, isolated_tmpdir: Path):
        with pytest.raises(EmptyResultError, match='no segments'):
            _use_case().execute(FakeContext(FakeState([])), TranscribeOptions(path=str(audio_file)))
        assert _leftovers(isolated_tmpdir) == []

    def test_segment_count_failure(self, audio_file: Path, isolated_tmpdir: Path):
        ctx = FakeContext(FakeState([('a', 0, 1)], count_error=RuntimeError('no state')))
        with pytest.raises(ExtractionError, match='number of segments'):
            _use_case().execute(ctx, TranscribeOptions(path=str(audio_file)))

    def test_segment_read_failure_aborts_whole_call(self, audio_file: Path, isolated_tmpdir: Path):
        ctx = FakeContext(FakeState([('a', 0, 1), ('b', 1, 2), ('c', 2, 3)], bad_index=1))
        with pytest.raises(ExtractionError, match='segment 1'):
            _use_case().execute(ctx, TranscribeOptions(path=str(audio_file)))
        assert _leftovers(isolated_tmpdir) == []

    def test_inverted_segment_timestamps_fail_extraction(self, audio_file: Path, isolated_tmpdir: Path):
        ctx = FakeContext(FakeState([('a', 300, 100)]))
        with pytest.raises(ExtractionError, match='segment 0'):
            _use_case().execute(ctx, TranscribeOptions(path=str(audio_file)))

    def test_cleanup_failure_reported_when_no_earlier_error(self, audio_file: Path, isolated_tmpdir: Path):
        with patch.object(Path, 'unlink', side_effect=PermissionError('locked')):
            with pytest.raises(CleanupError, match='locked'):
                _use_case().execute(FakeContext(), TranscribeOptions(path=str(audio_file)))

    def test_cleanup_failure_does_not_mask_earlier_error(self, audio_file: Path, isolated_tmpdir: Path):
        ctx = FakeContext(FakeState(full_error=RuntimeError('whisper_full failed')))
        with patch.object(Path, 'unlink', side_effect=PermissionError('locked')):
            with pytest.raises(InferenceError):
                _use_case().execute(ctx, TranscribeOptions(path=str(audio_file)))


class TestDiarization:
    def test_merges_speakers_from_diarizer(self, audio_file: Path, isolated_tmpdir: Path):
        state = FakeState([('hi', 0, 150), ('yo', 200, 400)])
        diarizer = FakeDiarizer(
            [
                SpeakerSpan(start=0.0, stop=1.8, speaker='SPEAKER_00'),
                SpeakerSpan(start=1.8, stop=5, speaker='SPEAKER_01'),
            ]
        )
        transcript = _use_case(diarizer=diarizer).execute(
            FakeContext(state), TranscribeOptions(path=str(audio_file)), diarize_options=_DIARIZE
        )
        assert [s.speaker for s in transcript.segments] == ['SPEAKER_00', 'SPEAKER_01']

    def test_diarizer_gets_model_paths_and_normalized_audio(self, audio_file: Path, isolated_tmpdir: Path):
        diarizer = FakeDiarizer([SpeakerSpan(start=0, stop=10, speaker='A')])
        _use_case(diarizer=diarizer).execute(
            FakeContext(), TranscribeOptions(path=str(audio_file)), diarize_options=_DIARIZE
        )
        vad, spk, audio = diarizer.calls[0]
        assert vad == Path('/m/vad.onnx')
        assert spk == Path('/m/spk.onnx')
        assert audio.suffix == '.wav'
        assert diarizer.audio_existed == [True]
        assert _leftovers(isolated_tmpdir) == []

    def test_not_requested_means_not_called(self, audio_file: Path, isolated_tmpdir: Path):
        diarizer = FakeDiarizer()
        _use_case(diarizer=diarizer).execute(FakeContext(), TranscribeOptions(path=str(audio_file)))
        assert diarizer.calls == []

    def test_capability_absent_skips_diarization(self, audio_file: Path, isolated_tmpdir: Path):
        uc = _use_case(diarizer=None)
        assert uc.can_diarize is False
        transcript = uc.execute(FakeContext(), TranscribeOptions(path=str(audio_file)), diarize_options=_DIARIZE)
        assert all(s.speaker is None for s in transcript.segments)

    def test_diarizer_failure(self, audio_file: Path, isolated_tmpdir: Path):
        diarizer = FakeDiarizer(error=RuntimeError('embedding model rejected'))
        with pytest.raises(DiarizationError, match='embedding model rejected'):
            _use_case(diarizer=diarizer).execute(
                FakeContext(), TranscribeOptions(path=str(audio_file)), diarize_options=_DIARIZE
            )
        assert _leftovers(isolated_tmpdir) == []


class TestIntToFloatAudio:
    def test_scales_int16_range(self):
        out = int_to_float_audio(np.array([32767, -32768, 0], dtype=np.int16))
        assert out.dtype == np.float32
        assert out[1] == -1.0
        assert out[0] < 1.0
