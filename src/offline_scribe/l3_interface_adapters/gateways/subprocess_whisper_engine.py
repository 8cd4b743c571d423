"""Gateway: whisper.cpp in a child process — the fault-isolated engine.

A segfault or abort inside whisper.cpp kills only the child. The parent sees
EOF on the pipe (or a dead process) and raises ``NativeFault``, which the
fault boundary turns into ``CrashError``. A native fault the child survives
is reported with a ``fault`` status and raised as ``NativeFault`` as well.
Progress, segment and trace messages stream back while a run is in flight
and are dispatched on the calling thread, so callbacks stay synchronous for
the caller.

Uses multiprocessing.Pipe (raw socket pair) instead of Queue to avoid
the resource tracker.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import signal
import threading
from collections.abc import Callable
from multiprocessing.connection import Connection
from pathlib import Path
from typing import Any

import numpy as np

from offline_scribe.l1_entities.errors import NativeFault
from offline_scribe.l1_entities.native_params import ContextParams, NativeParams
from offline_scribe.l1_entities.transcript import SegmentEvent
from offline_scribe.l2_use_cases.ports.inference_engine import NativeHooks
from offline_scribe.l3_interface_adapters.gateways.native_trace import TRACE_BRIDGE, install_trace_bridge, native_log

log = logging.getLogger('osc.engine')

_LOAD_TIMEOUT = 120.0  # seconds
_POLL_INTERVAL = 0.1  # seconds


class _PipeTraceHandler(logging.Handler):
    """Child side: forwards native trace records to the parent."""

    def __init__(self, conn: Any) -> None:
        super().__init__(logging.DEBUG)
        self._conn = conn

    def emit(self, record: logging.LogRecord) -> None:
        self._conn.send({'status': 'trace', 'line': record.getMessage()})


def _child_hooks(conn: Any, wanted: dict) -> NativeHooks:
    abort_seen = False

    def _abort() -> bool:
        nonlocal abort_seen
        while not abort_seen and conn.poll():
            msg = conn.recv()
            abort_seen = isinstance(msg, dict) and msg.get('op') == 'abort'
        return abort_seen

    return NativeHooks(
        progress=(lambda p: conn.send({'status': 'progress', 'percent': p})) if wanted.get('progress') else None,
        new_segment=(lambda ev: conn.send({'status': 'segment', 'event': ev.model_dump()}))
        if wanted.get('new_segment')
        else None,
        abort=_abort if wanted.get('abort') else None,
    )


def _subprocess_entry(model_path: str, params: dict, trace: bool, conn: Any) -> None:
    """Subprocess main: load the model in-process, then loop on run requests."""
    try:
        from offline_scribe.l3_interface_adapters.gateways.whisper_cpp_engine import (  # noqa: PLC0415 -- deferred: subprocess only
            WhisperCppEngine,
        )

        if trace:
            native_log.addHandler(_PipeTraceHandler(conn))
            native_log.setLevel(logging.DEBUG)
            native_log.propagate = False
        engine = WhisperCppEngine()
        if trace:
            engine.install_tracing()
        context = engine.load(Path(model_path), ContextParams.model_validate(params))
    except NativeFault as e:
        conn.send({'status': 'fault', 'error': e.detail})
        conn.close()
        return
    except Exception as e:
        conn.send({'status': 'error', 'error': str(e)})
        conn.close()
        return

    conn.send({'status': 'ready'})

    while True:
        req = conn.recv()
        if req is None:
            break
        if req.get('op') != 'run':
            continue
        try:
            state = context.create_state()
            state.full(NativeParams.model_validate(req['params']), req['samples'], _child_hooks(conn, req['hooks']))
            segments = [
                {'text': state.segment_text(i), 'start': state.segment_start(i), 'stop': state.segment_stop(i)}
                for i in range(state.segment_count())
            ]
            conn.send({'status': 'ok', 'segments': segments})
        except NativeFault as e:
            conn.send({'status': 'fault', 'error': e.detail})
        except Exception as e:
            conn.send({'status': 'error', 'error': str(e)})

    context.close()
    conn.close()


class SubprocessWhisperState:
    """Per-call state backed by the child process of its context."""

    def __init__(self, context: SubprocessWhisperContext) -> None:
        self._context = context
        self._segments: list[dict] = []

    def full(self, params: NativeParams, samples: np.ndarray, hooks: NativeHooks) -> None:
        self._segments = self._context.run(params, samples, hooks)

    def segment_count(self) -> int:
        return len(self._segments)

    def segment_text(self, index: int) -> str:
        return self._segments[index]['text']

    def segment_start(self, index: int) -> int:
        return int(self._segments[index]['start'])

    def segment_stop(self, index: int) -> int:
        return int(self._segments[index]['stop'])


class SubprocessWhisperContext:
    """Parent-side handle of a model loaded in a child process."""

    def __init__(self, process: Any, conn: Connection) -> None:
        self._process: Any = process  # SpawnProcess; typed as Any — context returns a subclass
        self._conn: Connection | None = conn
        self._lock = threading.Lock()

    def create_state(self) -> SubprocessWhisperState:
        if self._conn is None:
            raise RuntimeError('Context is closed')
        return SubprocessWhisperState(self)

    def run(self, params: NativeParams, samples: np.ndarray, hooks: NativeHooks) -> list[dict]:
        if self._conn is None:
            raise RuntimeError('Context is closed')
        with self._lock:
            self._conn.send(
                {
                    'op': 'run',
                    'params': params.model_dump(),
                    'samples': samples,
                    'hooks': {
                        'progress': hooks.progress is not None,
                        'new_segment': hooks.new_segment is not None,
                        'abort': hooks.abort is not None,
                    },
                }
            )
            result = self._await_reply(hooks)

        if result.get('status') == 'fault':
            raise NativeFault(result['error'])
        if result.get('status') == 'error':
            raise RuntimeError(result['error'])
        return result.get('segments', [])

    def _await_reply(self, hooks: NativeHooks) -> dict:
        assert self._conn is not None
        conn = self._conn
        abort_sent = False

        def _poll_abort() -> None:
            nonlocal abort_sent
            if hooks.abort is not None and not abort_sent and hooks.abort():
                conn.send({'op': 'abort'})
                abort_sent = True

        while True:
            _poll_abort()
            msg = _next_message(conn, self._process, timeout=None, on_idle=_poll_abort)
            status = msg.get('status')
            if status == 'progress':
                if hooks.progress is not None:
                    hooks.progress(msg['percent'])
            elif status == 'segment':
                if hooks.new_segment is not None:
                    hooks.new_segment(SegmentEvent.model_validate(msg['event']))
            else:
                return msg

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.send(None)
            except Exception:  # noqa: S110 — best-effort shutdown signal; pipe may already be closed
                pass
            try:
                self._conn.close()
            except Exception:  # noqa: S110 — best-effort; ignore double-close
                pass
            self._conn = None
        if self._process is not None:
            self._process.join(timeout=5)
            if self._process.is_alive():
                self._process.terminate()
                self._process.join(timeout=1)  # reap zombie after SIGTERM
            self._process = None


def _exit_detail(process: Any) -> str:
    code = process.exitcode
    if code is None:
        return 'engine process closed its pipe unexpectedly'
    if code < 0:
        try:
            return f'engine process killed by {signal.Signals(-code).name}'
        except ValueError:
            return f'engine process killed by signal {-code}'
    return f'engine process exited unexpectedly with code {code}'


def _next_message(
    conn: Connection,
    process: Any,
    timeout: float | None,
    on_idle: Callable[[], None] | None = None,
) -> dict:
    """Next non-trace message from the child. Raises NativeFault if the child died.

    With *timeout* None waits indefinitely. Every idle poll interval checks
    child liveness and calls *on_idle*.
    """
    waited = 0.0
    while True:
        try:
            if not conn.poll(timeout=_POLL_INTERVAL):
                if not process.is_alive():
                    process.join(timeout=1)
                    raise NativeFault(_exit_detail(process))
                if on_idle is not None:
                    on_idle()
                waited += _POLL_INTERVAL
                if timeout is not None and waited >= timeout:
                    raise RuntimeError('Timeout waiting for whisper engine process')
                continue
            msg = conn.recv()
        except EOFError as e:
            process.join(timeout=1)
            raise NativeFault(_exit_detail(process)) from e
        if msg.get('status') == 'trace':
            native_log.debug('%s', msg['line'])
            continue
        return msg


class SubprocessWhisperEngine:
    """Loads whisper models in a spawned child process per context."""

    def install_tracing(self) -> None:
        install_trace_bridge()

    def load(self, model_path: Path, params: ContextParams) -> SubprocessWhisperContext:
        ctx = mp.get_context('spawn')
        parent_conn, child_conn = ctx.Pipe(duplex=True)
        process = ctx.Process(
            target=_subprocess_entry,
            args=(str(model_path), params.model_dump(), TRACE_BRIDGE.installed, child_conn),
            daemon=True,
        )
        process.start()
        child_conn.close()  # parent only needs its own end

        try:
            result = _next_message(parent_conn, process, timeout=_LOAD_TIMEOUT)
        except BaseException:
            parent_conn.close()
            if process.is_alive():
                process.terminate()
            raise

        if result.get('status') != 'ready':
            parent_conn.close()
            process.join(timeout=5)
            if result.get('status') == 'fault':
                raise NativeFault(result['error'])
            raise RuntimeError(f'Whisper subprocess failed to init: {result.get("error", "unknown")}')
        log.debug('whisper engine process %s ready', process.pid)
        return SubprocessWhisperContext(process, parent_conn)
