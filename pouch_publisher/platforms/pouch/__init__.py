"""Pouch platform adapters."""

from __future__ import annotations

from .api import PUBLISH_ENDPOINT, PouchApiClient, classify_response
from .media import UPLOAD_ENDPOINT, PouchAudioUploader
from .multipart import FilePart, encode_multipart
from .transcription import TRANSCRIBE_ENDPOINT, PouchTranscriptionTrigger

__all__ = [
    "FilePart",
    "PUBLISH_ENDPOINT",
    "PouchApiClient",
    "PouchAudioUploader",
    "PouchTranscriptionTrigger",
    "TRANSCRIBE_ENDPOINT",
    "UPLOAD_ENDPOINT",
    "classify_response",
    "encode_multipart",
]
