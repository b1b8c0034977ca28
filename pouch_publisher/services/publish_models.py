"""Data models for the Pouch publishing workflow."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pouch_publisher.core.errors import PouchError
from pouch_publisher.core.state import Destination

EDITING_STATUSES = ("draft", "feedback", "submission")


class PublishStage(str, Enum):
    IDLE = "idle"
    RESOLVING_AUDIO = "resolving_audio"
    UPLOADING_AUDIO = "uploading_audio"
    DISPATCHING = "dispatching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class PublishJob:
    """Everything one publish attempt needs, already validated by the caller."""

    vault_path: str
    title: str
    content: str
    destination: Destination
    slug: str
    editing_status: str
    publish_internal: bool = True
    publish_public: bool = False
    excerpt: bool = False
    hidden: bool = False
    tags: str = ""
    template: str = ""
    include_in_podcast: bool = False
    publish_immediately: bool = False
    remove_silence: bool = False
    enable_transcription: bool = True
    improve_transcript_with_ai: bool = False


@dataclass(slots=True)
class PublishRequest:
    """The publish form before encoding; ``filename_base`` marks an update."""

    title: str
    slug: str
    markdown: str
    publish_internal: bool
    publish_public: bool
    excerpt: bool
    hidden: bool
    tags: str
    template: str
    editing_status: str
    destination_name: str
    filename_base: str | None = None
    audio_file: str | None = None
    include_in_podcast: bool = False
    publish_immediately: bool = False


@dataclass(slots=True)
class PublishOutcome:
    """Result of a publish attempt as shown to the user."""

    title: str
    slug: str
    is_update: bool
    stage: PublishStage = PublishStage.IDLE
    url: str = ""
    url_label: str = ""
    response: dict[str, Any] | None = None
    error: PouchError | None = None
    audio_filename: str | None = None
    form: dict[str, str] = field(default_factory=dict)
    notices: list[str] = field(default_factory=list)
    transcription: Future[str] | None = None

    @property
    def success(self) -> bool:
        return self.stage is PublishStage.SUCCEEDED


__all__ = [
    "EDITING_STATUSES",
    "PublishJob",
    "PublishOutcome",
    "PublishRequest",
    "PublishStage",
]
