"""Gateway: in-process whisper.cpp engine — implements InferenceEngine port."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import _pywhispercpp as pw
import numpy as np
from pywhispercpp.model import Model

from offline_scribe.l1_entities.errors import NativeFault
from offline_scribe.l1_entities.native_params import ContextParams, NativeParams, SamplingStrategy
from offline_scribe.l1_entities.transcript import SegmentEvent
from offline_scribe.l2_use_cases.ports.inference_engine import NativeHooks
from offline_scribe.l3_interface_adapters.gateways.native_trace import (
    capture_native_output,
    install_trace_bridge,
    relay,
)

log = logging.getLogger('osc.engine')


def _default_params(strategy: SamplingStrategy) -> Any:
    if strategy == SamplingStrategy.BEAM_SEARCH:
        return pw.whisper_full_default_params(pw.whisper_sampling_strategy.WHISPER_SAMPLING_BEAM_SEARCH)
    return pw.whisper_full_default_params(pw.whisper_sampling_strategy.WHISPER_SAMPLING_GREEDY)


def _decode(text: str | bytes) -> str:
    if isinstance(text, bytes):
        return text.decode('utf-8', errors='replace')
    return text


class WhisperCppState:
    """Per-call state: runs one inference and holds its segments."""

    def __init__(self, context: WhisperCppContext) -> None:
        self._context = context
        self._segments: list[Any] = []

    def full(self, params: NativeParams, samples: np.ndarray, hooks: NativeHooks) -> None:
        self._segments = self._context.run(params, samples, hooks)

    def segment_count(self) -> int:
        return len(self._segments)

    def segment_text(self, index: int) -> str:
        return _decode(self._segments[index].text)

    def segment_start(self, index: int) -> int:
        return int(self._segments[index].t0)

    def segment_stop(self, index: int) -> int:
        return int(self._segments[index].t1)


class WhisperCppContext:
    """Loaded pywhispercpp model. Runs are serialized: whisper.cpp keeps one decoder per model.

    The hooks are wired to whisper.cpp's own callbacks: ``abort`` is polled by
    the decoder and stops it, ``progress`` receives the native percentage.
    A final 100 is reported when the engine finished without reaching it.
    """

    def __init__(self, model: Model) -> None:
        self._model: Model | None = model
        self._lock = threading.Lock()

    def create_state(self) -> WhisperCppState:
        if self._model is None:
            raise RuntimeError('Context is closed')
        return WhisperCppState(self)

    def run(self, params: NativeParams, samples: np.ndarray, hooks: NativeHooks) -> list[Any]:
        if self._model is None:
            raise RuntimeError('Context is closed')
        emitted = 0
        last_percent = -1
        aborted = False

        with self._lock, capture_native_output() as lines:

            def _on_segment(seg: Any) -> None:
                nonlocal emitted
                if hooks.new_segment is not None:
                    with lines.released():
                        hooks.new_segment(
                            SegmentEvent(index=emitted, start=seg.t0, stop=seg.t1, text=_decode(seg.text))
                        )
                emitted += 1

            def _on_progress(percent: int) -> None:
                nonlocal last_percent
                last_percent = percent
                with lines.released():
                    hooks.progress(percent)

            def _on_abort() -> bool:
                nonlocal aborted
                aborted = aborted or bool(hooks.abort())
                return aborted

            kwargs = params.engine_kwargs()
            if hooks.progress is not None:
                kwargs['progress_callback'] = _on_progress
            # transcribe() keeps its keyword overrides on the model; every run starts from engine defaults
            self._model._params = _default_params(params.strategy)
            try:
                result = self._model.transcribe(
                    samples,
                    new_segment_callback=_on_segment,
                    abort_callback=_on_abort if hooks.abort is not None else None,
                    **kwargs,
                )
            except SystemError as exc:
                raise NativeFault(f'native inference fault: {exc}') from exc
        relay(lines)
        if aborted:
            log.info('abort requested; native inference stopped early')
        elif hooks.progress is not None and last_percent < 100:
            hooks.progress(100)
        return list(result)

    def close(self) -> None:
        """Explicitly release the model, capturing C-level teardown noise."""
        if self._model is not None:
            with capture_native_output() as lines:
                del self._model
                self._model = None
            relay(lines)


class WhisperCppEngine:
    """pywhispercpp adapter. Loads models in this process."""

    def install_tracing(self) -> None:
        install_trace_bridge()

    def load(self, model_path: Path, params: ContextParams) -> WhisperCppContext:
        with capture_native_output() as lines:
            try:
                model = Model(
                    str(model_path),
                    context_params={'use_gpu': params.use_gpu, 'gpu_device': params.gpu_device},
                    print_progress=False,
                    print_realtime=False,
                )
            except SystemError as exc:
                raise NativeFault(f'native load fault: {exc}') from exc
        relay(lines)
        return WhisperCppContext(model)
