"""Settings for ingestion runs and the metrics export."""

from __future__ import annotations

from .errors import ConfigError
from .loader import load_settings
from .models import (
    DEFAULT_DATABASE_URL,
    DEFAULT_EXPORT_PATH,
    IngestionSettings,
    SettingsFile,
)

__all__ = [
    "DEFAULT_DATABASE_URL",
    "DEFAULT_EXPORT_PATH",
    "ConfigError",
    "IngestionSettings",
    "SettingsFile",
    "load_settings",
]
