"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

import logging
from collections.abc import Callable

from offline_scribe.l1_entities.config import AppConfig
from offline_scribe.l2_use_cases.create_context_use_case import CreateContextUseCase
from offline_scribe.l2_use_cases.ports.config_loader import ConfigLoader
from offline_scribe.l2_use_cases.ports.diarizer import Diarizer
from offline_scribe.l2_use_cases.ports.inference_engine import InferenceEngine
from offline_scribe.l2_use_cases.ports.model_resolver import ModelResolver
from offline_scribe.l2_use_cases.transcribe_file_use_case import TranscribeFileUseCase
from offline_scribe.l3_interface_adapters.gateways.ffmpeg_audio_normalizer import FfmpegAudioNormalizer
from offline_scribe.l3_interface_adapters.gateways.hf_model_resolver import HfModelResolver
from offline_scribe.l3_interface_adapters.gateways.pyannote_diarizer import PyannoteDiarizer, diarization_available
from offline_scribe.l3_interface_adapters.gateways.subprocess_whisper_engine import SubprocessWhisperEngine
from offline_scribe.l3_interface_adapters.gateways.wav_waveform_parser import WavWaveformParser
from offline_scribe.l3_interface_adapters.gateways.yaml_config_loader import YamlConfigLoader
from offline_scribe.l4_frameworks_and_drivers.config import detect_gpu_capability

log = logging.getLogger('osc.container')


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        on_download_progress: Callable[[int], None] | None = None,
    ) -> None:
        self.config = config

        self.engine: InferenceEngine = self._build_engine(config.model.isolated)
        self.diarizer: Diarizer | None = PyannoteDiarizer() if diarization_available() else None
        self.model_resolver: ModelResolver = HfModelResolver(on_progress=on_download_progress)

        self.create_context = CreateContextUseCase(self.engine, gpu_capable=detect_gpu_capability())
        self.transcribe = TranscribeFileUseCase(
            normalizer=FfmpegAudioNormalizer(timeout=config.normalization.ffmpeg_timeout),
            waveform_parser=WavWaveformParser(),
            diarizer=self.diarizer,
        )
        log.debug('diarization capability: %s', 'present' if self.diarizer is not None else 'absent')

    @staticmethod
    def _build_engine(isolated: bool) -> InferenceEngine:
        if isolated:
            return SubprocessWhisperEngine()
        from offline_scribe.l3_interface_adapters.gateways.whisper_cpp_engine import (  # noqa: PLC0415 -- deferred: loads pywhispercpp into this process
            WhisperCppEngine,
        )

        return WhisperCppEngine()

    @staticmethod
    def config_loader() -> ConfigLoader:
        return YamlConfigLoader()
