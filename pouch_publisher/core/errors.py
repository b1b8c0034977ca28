"""Exception taxonomy for the publishing pipeline."""

from __future__ import annotations

import json
from typing import Any, Mapping


class PouchError(RuntimeError):
    """Base class carrying a human message plus structured details."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def __str__(self) -> str:
        base = super().__str__()
        if not self.details:
            return base
        try:
            detail_repr = json.dumps(self.details, ensure_ascii=False)
        except TypeError:
            detail_repr = str(self.details)
        return f"{base} | details: {detail_repr}"


class AudioValidationError(PouchError):
    """The referenced audio file has a rejected type or is too large."""


class AudioResolutionError(PouchError):
    """The referenced audio file does not exist in the vault."""


class AudioUploadError(PouchError):
    """The audio upload request failed or was rejected."""


class ApiError(PouchError):
    """The service answered but reported a failure."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code


class NetworkError(PouchError):
    """The request never produced an HTTP response."""


class TranscriptionError(PouchError):
    """Triggering transcription failed; never fails a publish."""


class MetadataWriteError(PouchError):
    """Rewriting the note front matter failed after a committed publish."""


class DestinationError(PouchError):
    """Invalid destination configuration or selection."""


# Errors that abort a publish attempt before anything is committed remotely.
ABORTING_ERRORS: tuple[type[PouchError], ...] = (
    AudioValidationError,
    AudioResolutionError,
    AudioUploadError,
    ApiError,
    NetworkError,
)

__all__ = [
    "ABORTING_ERRORS",
    "ApiError",
    "AudioResolutionError",
    "AudioUploadError",
    "AudioValidationError",
    "DestinationError",
    "MetadataWriteError",
    "NetworkError",
    "PouchError",
    "TranscriptionError",
]
