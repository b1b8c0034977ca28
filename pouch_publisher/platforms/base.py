"""Contracts the publish workflow expects from a remote content service."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Mapping, Protocol

from pouch_publisher.core.state import Destination


class PostDispatcher(Protocol):
    """Sends a publish form and returns the success payload."""

    def send(
        self, endpoint: str, fields: Mapping[str, Any], destination: Destination
    ) -> dict[str, Any]:
        """Raise ApiError or NetworkError when the post was not stored."""


class AudioUploader(Protocol):
    """Uploads one audio file and returns the filename the service stored it under."""

    def upload(
        self,
        *,
        file_name: str,
        data: bytes,
        mime_type: str,
        slug: str,
        destination: Destination,
        remove_silence: bool = False,
    ) -> str:
        """Raise AudioUploadError on any failure."""


class TranscriptionStarter(Protocol):
    """Starts transcription in the background; the future resolves to a user notice."""

    def fire(
        self,
        audio_filename: str,
        slug: str,
        destination: Destination,
        *,
        ai_model: str | None = None,
        ai_provider: str | None = None,
    ) -> Future[str]:
        """Never raises; failures surface as a notice."""
