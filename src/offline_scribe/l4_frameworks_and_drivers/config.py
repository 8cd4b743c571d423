"""Infrastructure config defaults and GPU capability flags — lives in L4, not domain."""

from __future__ import annotations

import copy
import os
from collections.abc import Mapping

from offline_scribe.l1_entities.config import AppConfig
from offline_scribe.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'model': {
        'name': 'large-v3-turbo-q8_0',
        'use_gpu': None,
        'gpu_device': None,
        'isolated': True,
    },
    'transcription': {
        'lang': None,
        'translate': False,
        'word_timestamps': False,
        'max_sentence_len': None,
        'temperature': None,
        'max_text_ctx': None,
        'init_prompt': None,
        'n_threads': None,
    },
    'diarization': {
        'vad_model_path': None,
        'speaker_model_path': None,
    },
    'normalization': {
        'ffmpeg_timeout': 300,
    },
}

GPU_CAPABILITY_VARS = ('CUDA_VERSION', 'ROCM_VERSION')


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)


def detect_gpu_capability(environ: Mapping[str, str] | None = None) -> bool:
    """True when the runtime was provisioned with CUDA or ROCm (Nvidia or AMD)."""
    env = os.environ if environ is None else environ
    return any(env.get(var, '').strip() for var in GPU_CAPABILITY_VARS)
