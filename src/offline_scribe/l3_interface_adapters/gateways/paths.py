"""Shared path constants for configuration."""

from __future__ import annotations

from platformdirs import user_config_path

CONFIG_ENV_VAR = 'OFFLINE_SCRIBE_CONFIG'
CONFIG_DIR = user_config_path('offline-scribe')

DEFAULT_CONFIG_PATHS = [
    CONFIG_DIR / 'config.yaml',
    CONFIG_DIR / 'config.yml',
]
