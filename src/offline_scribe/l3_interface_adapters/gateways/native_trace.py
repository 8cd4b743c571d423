"""Gateway: route whisper.cpp diagnostic output into host logging.

whisper.cpp prints init/progress messages directly via C fprintf, bypassing
Python's sys.stdout. Once the bridge is installed, native calls wrapped in
``capture_native_output()`` have fd 1 and 2 pointed at a temporary file and
the captured lines are relayed to the ``osc.native`` logger afterwards.
Python callbacks invoked from native code run inside ``released()`` so their
own terminal output is not captured.
"""

from __future__ import annotations

import contextlib
import logging
import os
import sys
import tempfile
import threading
from collections.abc import Iterator

native_log = logging.getLogger('osc.native')


class NativeTraceBridge:
    """Process-wide, install-once switch for native output capture."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._installed = False

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> bool:
        """Install the bridge. Returns False when it was already installed."""
        with self._lock:
            if self._installed:
                return False
            self._installed = True
        native_log.debug('native trace bridge installed')
        return True

    def uninstall(self) -> None:
        with self._lock:
            self._installed = False


TRACE_BRIDGE = NativeTraceBridge()


def install_trace_bridge() -> bool:
    return TRACE_BRIDGE.install()


class NativeCapture(list):
    """Captured native lines, filled in when the capture block exits."""

    def __init__(self) -> None:
        super().__init__()
        self._terminal: tuple[int, int] | None = None
        self._sink: int | None = None

    @contextlib.contextmanager
    def released(self) -> Iterator[None]:
        """Point fd 1 and 2 back at the terminal for the duration of the block."""
        if self._terminal is None or self._sink is None:
            yield
            return
        sys.stdout.flush()
        sys.stderr.flush()
        os.dup2(self._terminal[0], 1)
        os.dup2(self._terminal[1], 2)
        try:
            yield
        finally:
            sys.stdout.flush()
            sys.stderr.flush()
            os.dup2(self._sink, 1)
            os.dup2(self._sink, 2)


@contextlib.contextmanager
def capture_native_output() -> Iterator[NativeCapture]:
    """Capture C-level stdout/stderr written inside the block.

    Yields a list that holds the captured lines once the block exits. Without
    an installed bridge nothing is redirected and the list stays empty.
    """
    lines = NativeCapture()
    if not TRACE_BRIDGE.installed:
        yield lines
        return

    sys.stdout.flush()
    sys.stderr.flush()
    with tempfile.TemporaryFile() as buf:
        old_stdout = os.dup(1)
        old_stderr = os.dup(2)
        try:
            os.dup2(buf.fileno(), 1)
            os.dup2(buf.fileno(), 2)
            lines._terminal = (old_stdout, old_stderr)
            lines._sink = buf.fileno()
            yield lines
        finally:
            lines._terminal = None
            lines._sink = None
            sys.stdout.flush()
            sys.stderr.flush()
            os.dup2(old_stdout, 1)
            os.dup2(old_stderr, 2)
            os.close(old_stdout)
            os.close(old_stderr)
            buf.seek(0)
            lines.extend(line for line in buf.read().decode('utf-8', errors='replace').splitlines() if line.strip())


def relay(lines: list[str]) -> None:
    """Log captured native lines at DEBUG."""
    for line in lines:
        native_log.debug('%s', line.rstrip())
