"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from offline_scribe.l1_entities.config import AppConfig
from offline_scribe.l4_frameworks_and_drivers.config import build_app_config
from tests.fakes import FakeContext, FakeEngine, FakeNormalizer, FakeWaveformParser


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    p = tmp_path / 'meeting.mp3'
    p.write_bytes(b'ID3-fake-audio')
    return p


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    p = tmp_path / 'ggml-tiny.bin'
    p.write_bytes(b'ggml')
    return p


@pytest.fixture
def isolated_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point tempfile at a private directory so leftover artifacts are observable."""
    d = tmp_path / 'tmp'
    d.mkdir()
    monkeypatch.setattr('tempfile.tempdir', str(d))
    return d


@pytest.fixture
def default_config() -> AppConfig:
    return build_app_config({})


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    content = """\
model:
  name: "small-q8_0"
  gpu_device: 1
transcription:
  lang: "de"
  word_timestamps: true
  max_sentence_len: 12
diarization:
  vad_model_path: "/models/segmentation.onnx"
  speaker_model_path: "/models/wespeaker.onnx"
normalization:
  ffmpeg_timeout: 60
"""
    p = tmp_path / 'config.yaml'
    p.write_text(content, encoding='utf-8')
    return p


@pytest.fixture
def fake_context() -> FakeContext:
    return FakeContext()


@pytest.fixture
def fake_engine(fake_context: FakeContext) -> FakeEngine:
    return FakeEngine(fake_context)


@pytest.fixture
def fake_normalizer() -> FakeNormalizer:
    return FakeNormalizer()


@pytest.fixture
def fake_parser() -> FakeWaveformParser:
    return FakeWaveformParser()
