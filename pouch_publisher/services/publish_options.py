"""Options-form state as a pure reducer over user intents."""

from __future__ import annotations

from dataclasses import dataclass, replace

from pouch_publisher.core.state import Preferences

from .publish_models import EDITING_STATUSES

_TEXT_FIELDS = {"slug", "tags", "template"}
_TOGGLE_FIELDS = {
    "publish_internal",
    "publish_public",
    "excerpt",
    "hidden",
    "remember_settings",
    "include_in_podcast",
    "publish_immediately",
    "remove_silence",
    "enable_transcription",
    "improve_transcript_with_ai",
}


@dataclass(frozen=True, slots=True)
class PublishOptions:
    destination_index: int
    slug: str
    tags: str = ""
    template: str = ""
    publish_internal: bool = True
    publish_public: bool = False
    excerpt: bool = False
    hidden: bool = False
    editing_status: str = "draft"
    remember_settings: bool = True
    include_in_podcast: bool = False
    publish_immediately: bool = False
    remove_silence: bool = False
    enable_transcription: bool = True
    improve_transcript_with_ai: bool = False

    @property
    def show_public_options(self) -> bool:
        """Excerpt and hidden only apply to public posts."""
        return self.publish_public

    @property
    def show_ai_option(self) -> bool:
        return self.enable_transcription

    @classmethod
    def initial(
        cls,
        *,
        slug: str,
        preferences: Preferences,
        destination_index: int,
        editing_status: str | None = None,
    ) -> "PublishOptions":
        """Seed the form from stored preferences and the note's current status.

        AI transcript cleanup and silence removal always start off; they need an
        explicit opt-in per publish.
        """
        status = editing_status if editing_status in EDITING_STATUSES else "draft"
        return cls(
            destination_index=destination_index,
            slug=slug,
            tags=preferences.default_tags,
            template=preferences.default_template,
            publish_internal=preferences.publish_internal,
            publish_public=preferences.publish_public,
            excerpt=preferences.publish_excerpt,
            hidden=preferences.publish_hidden and not preferences.publish_excerpt,
            editing_status=status,
            remember_settings=preferences.remember_settings,
            include_in_podcast=preferences.include_in_podcast,
            publish_immediately=preferences.publish_immediately,
            enable_transcription=preferences.enable_transcription,
        )


@dataclass(frozen=True, slots=True)
class SetText:
    field: str
    value: str


@dataclass(frozen=True, slots=True)
class Toggle:
    field: str
    value: bool


@dataclass(frozen=True, slots=True)
class SetEditingStatus:
    status: str


@dataclass(frozen=True, slots=True)
class SelectDestination:
    index: int
    available: int


Intent = SetText | Toggle | SetEditingStatus | SelectDestination


def reduce_options(state: PublishOptions, intent: Intent) -> PublishOptions:
    """Return the next form state; excerpt and hidden never end up both enabled."""
    if isinstance(intent, SetText):
        if intent.field not in _TEXT_FIELDS:
            raise ValueError(f"Unknown text field: {intent.field}")
        return replace(state, **{intent.field: intent.value})

    if isinstance(intent, Toggle):
        if intent.field not in _TOGGLE_FIELDS:
            raise ValueError(f"Unknown toggle: {intent.field}")
        if intent.field == "excerpt" and intent.value:
            return replace(state, excerpt=True, hidden=False)
        if intent.field == "hidden" and intent.value:
            return replace(state, hidden=True, excerpt=False)
        if intent.field == "enable_transcription" and not intent.value:
            return replace(state, enable_transcription=False, improve_transcript_with_ai=False)
        if intent.field == "improve_transcript_with_ai" and not state.enable_transcription:
            return state
        return replace(state, **{intent.field: intent.value})

    if isinstance(intent, SetEditingStatus):
        if intent.status not in EDITING_STATUSES:
            raise ValueError(f"Unknown editing status: {intent.status}")
        return replace(state, editing_status=intent.status)

    if isinstance(intent, SelectDestination):
        if intent.available <= 0:
            return replace(state, destination_index=0)
        return replace(state, destination_index=max(0, min(intent.index, intent.available - 1)))

    raise TypeError(f"Unsupported intent: {intent!r}")


def apply_intents(state: PublishOptions, intents: list[Intent]) -> PublishOptions:
    for intent in intents:
        state = reduce_options(state, intent)
    return state


def needs_status_confirmation(initial_status: str, new_status: str) -> bool:
    """Moving a post away from ``submission`` may unpublish it."""
    return initial_status == "submission" and new_status != "submission"


__all__ = [
    "Intent",
    "PublishOptions",
    "SelectDestination",
    "SetEditingStatus",
    "SetText",
    "Toggle",
    "apply_intents",
    "needs_status_confirmation",
    "reduce_options",
]
