"""Use case: stand up an inference context behind a fault boundary."""

from __future__ import annotations

import logging
from pathlib import Path

from offline_scribe.l1_entities.errors import LoadError, NotFoundError
from offline_scribe.l1_entities.native_params import ContextParams
from offline_scribe.l2_use_cases.ports.inference_engine import InferenceContext, InferenceEngine
from offline_scribe.l2_use_cases.utils.fault_boundary import fault_boundary

log = logging.getLogger('osc.context')


class CreateContextUseCase:
    """Loads one model into an inference context.

    *gpu_capable* is the capability flag resolved at configuration time; an
    explicit *use_gpu* on ``execute`` overrides it. A GPU device index only
    picks the device, it never switches GPU mode on by itself.
    """

    def __init__(self, engine: InferenceEngine, gpu_capable: bool = False) -> None:
        self._engine = engine
        self._gpu_capable = gpu_capable

    def context_params(self, gpu_device: int | None = None, use_gpu: bool | None = None) -> ContextParams:
        params = ContextParams(use_gpu=self._gpu_capable if use_gpu is None else use_gpu)
        if gpu_device is not None:
            params.gpu_device = gpu_device
        return params

    def execute(
        self,
        model_path: Path,
        gpu_device: int | None = None,
        use_gpu: bool | None = None,
    ) -> InferenceContext:
        self._engine.install_tracing()
        log.debug('open model...')
        if not model_path.exists():
            raise NotFoundError(f'Model file not found: {model_path}', stage='load')

        params = self.context_params(gpu_device, use_gpu)
        log.debug('gpu device: %s', params.gpu_device)
        log.debug('use gpu: %s', params.use_gpu)
        log.debug('creating whisper context with model path %s', model_path)

        with fault_boundary('load', LoadError, 'failed to open model'):
            ctx = self._engine.load(model_path, params)

        log.debug('created context successfully')
        return ctx
