"""Core primitives: error taxonomy, note storage and persisted state."""

from .audit_log import DebugLog, DebugLogEntry, PublishLog, PublishLogEntry
from .errors import (
    ABORTING_ERRORS,
    ApiError,
    AudioResolutionError,
    AudioUploadError,
    AudioValidationError,
    DestinationError,
    MetadataWriteError,
    NetworkError,
    PouchError,
    TranscriptionError,
)
from .state import Destination, PostMapping, Preferences, SettingsStore
from .vault import Vault

__all__ = [
    "ABORTING_ERRORS",
    "ApiError",
    "AudioResolutionError",
    "AudioUploadError",
    "AudioValidationError",
    "DebugLog",
    "DebugLogEntry",
    "Destination",
    "DestinationError",
    "MetadataWriteError",
    "NetworkError",
    "PostMapping",
    "PouchError",
    "Preferences",
    "PublishLog",
    "PublishLogEntry",
    "SettingsStore",
    "TranscriptionError",
    "Vault",
]
