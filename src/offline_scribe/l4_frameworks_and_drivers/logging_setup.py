"""Logging setup: stderr console handler plus optional debug log file."""

from __future__ import annotations

import logging
from pathlib import Path

_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure the ``osc`` logger tree.

    Console shows WARNING and above (DEBUG when *verbose*); *log_file*, when
    given, always receives DEBUG.
    """
    root = logging.getLogger('osc')
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    root.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding='utf-8')
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        logging.getLogger('osc').info('Debug logging started → %s', log_file)
