"""Callback bridge — progress registry plus wiring of the three callback kinds.

The engine's progress hook is a single fixed entry point with no closure of
its own, so progress callbacks live in a process-wide registry. Each call
registers under its own token and the hook handed to the engine is bound to
that token, so concurrent or back-to-back calls never see each other's
progress events.
"""

from __future__ import annotations

import contextlib
import functools
import itertools
import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from offline_scribe.l1_entities.transcript import SegmentEvent
from offline_scribe.l2_use_cases.ports.inference_engine import NativeHooks

log = logging.getLogger('osc.progress')

ProgressCallback = Callable[[int], None]

_LOCK_TIMEOUT = 1.0  # seconds


@dataclass(frozen=True)
class TranscribeCallbacks:
    """Optional callbacks supplied with one transcription request."""

    progress: ProgressCallback | None = None
    new_segment: Callable[[SegmentEvent], None] | None = None
    abort: Callable[[], bool] | None = None


class ProgressRegistry:
    """Mutex-guarded holder of progress callbacks keyed by call token."""

    def __init__(self, lock_timeout: float = _LOCK_TIMEOUT) -> None:
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self._callbacks: dict[int, ProgressCallback] = {}
        self._tokens = itertools.count(1)

    def register(self, callback: ProgressCallback) -> int:
        with self._lock:
            token = next(self._tokens)
            self._callbacks[token] = callback
        return token

    def unregister(self, token: int) -> None:
        with self._lock:
            self._callbacks.pop(token, None)

    def active_tokens(self) -> list[int]:
        with self._lock:
            return sorted(self._callbacks)

    def dispatch(self, token: int, percent: int) -> None:
        """Native progress entry point. Best-effort: never raises on lock failure."""
        log.debug('progress callback %s', percent)
        if not self._lock.acquire(timeout=self._lock_timeout):
            log.error('Failed to lock progress registry; dropping progress %s for call %s', percent, token)
            return
        try:
            callback = self._callbacks.get(token)
        finally:
            self._lock.release()
        if callback is not None:
            callback(percent)

    @contextlib.contextmanager
    def channel(self, callback: ProgressCallback | None) -> Iterator[ProgressCallback | None]:
        """Register *callback* for the duration of one call and yield the engine-facing hook."""
        if callback is None:
            yield None
            return
        token = self.register(callback)
        try:
            yield functools.partial(self.dispatch, token)
        finally:
            self.unregister(token)


PROGRESS_REGISTRY = ProgressRegistry()


@contextlib.contextmanager
def wire_callbacks(
    callbacks: TranscribeCallbacks | None,
    registry: ProgressRegistry = PROGRESS_REGISTRY,
) -> Iterator[NativeHooks]:
    """Yield the native hooks for one call; segment and abort callbacks pass straight through."""
    callbacks = callbacks or TranscribeCallbacks()
    with registry.channel(callbacks.progress) as progress_hook:
        yield NativeHooks(
            progress=progress_hook,
            new_segment=callbacks.new_segment,
            abort=callbacks.abort,
        )
