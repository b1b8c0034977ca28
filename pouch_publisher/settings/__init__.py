"""Settings package exports."""

from .loader import (
    AppConfig,
    AudioSettings,
    HttpSettings,
    LoggingSettings,
    PathSettings,
    TranscriptionSettings,
    load_config,
)

__all__ = [
    "AppConfig",
    "AudioSettings",
    "HttpSettings",
    "LoggingSettings",
    "PathSettings",
    "TranscriptionSettings",
    "load_config",
]
