"""Platform integration package."""

from __future__ import annotations

from .base import AudioUploader, PostDispatcher, TranscriptionStarter

__all__ = ["AudioUploader", "PostDispatcher", "TranscriptionStarter"]
