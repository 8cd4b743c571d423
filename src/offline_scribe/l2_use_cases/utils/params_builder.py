"""Build native inference parameters from request options — pure, no I/O."""

from __future__ import annotations

import logging

from offline_scribe.l1_entities.native_params import NativeParams, SamplingStrategy
from offline_scribe.l1_entities.options import TranscribeOptions

log = logging.getLogger('osc.params')


def build_native_params(options: TranscribeOptions) -> NativeParams:
    """Translate *options* into the engine's full-inference parameter set.

    Permissive: missing or odd option combinations fall back to engine
    defaults instead of being rejected. Token timestamps are always on so
    diarization can align segments afterwards.
    """
    params = NativeParams(strategy=SamplingStrategy.GREEDY)
    log.debug('set language to %r', options.lang)

    if options.word_timestamps:
        params.token_timestamps = True
        params.split_on_word = True
        params.max_len = options.max_sentence_len or 1

    if options.translate:
        params.translate = True
    if options.lang is not None:
        params.language = options.lang

    params.print_special = False
    params.print_progress = True
    params.print_realtime = False
    params.print_timestamps = False
    params.suppress_blank = True
    params.token_timestamps = True

    if options.temperature is not None:
        log.debug('setting temperature to %s', options.temperature)
        params.temperature = options.temperature

    if options.max_text_ctx is not None:
        log.debug('setting n_max_text_ctx to %s', options.max_text_ctx)
        params.n_max_text_ctx = options.max_text_ctx

    if options.init_prompt is not None:
        log.debug('setting init prompt to %r', options.init_prompt)
        params.initial_prompt = options.init_prompt

    if options.n_threads is not None:
        log.debug('setting n threads to %s', options.n_threads)
        params.n_threads = options.n_threads

    return params
