"""Persistent publisher state: destinations, preferences, post mappings and logs."""

from __future__ import annotations

import json
import re
import threading
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

from ..utils.file_helper import atomic_write_text
from ..utils.logging import get_logger
from ..utils.text import utc_timestamp
from .audit_log import DebugLog, DebugLogEntry, PublishLog, PublishLogEntry
from .errors import DestinationError

LOGGER = get_logger(__name__)

MAX_DESTINATIONS = 5
MAX_NAME_LENGTH = 7
_WHITESPACE = re.compile(r"\s+")


def sanitize_destination_name(value: str) -> str:
    """Drop whitespace and cap the shortname at seven characters."""
    return _WHITESPACE.sub("", value)[:MAX_NAME_LENGTH]


@dataclass(slots=True)
class Destination:
    """One configured Pouch instance."""

    name: str
    url: str
    api_key: str
    magazine_mode: bool = False

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/")

    def endpoint(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Destination":
        return cls(
            name=str(data.get("name", "")),
            url=str(data.get("url", "")),
            api_key=str(data.get("api_key", "")),
            magazine_mode=bool(data.get("magazine_mode", False)),
        )


@dataclass(slots=True)
class PostMapping:
    file_path: str
    filename_base: str
    last_published: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class Preferences:
    """Defaults for one-click publishing, optionally remembered from the options flow."""

    publish_internal: bool = True
    publish_public: bool = False
    publish_excerpt: bool = False
    publish_hidden: bool = False
    default_tags: str = ""
    default_template: str = ""
    remember_settings: bool = True
    include_in_podcast: bool = False
    publish_immediately: bool = False
    enable_transcription: bool = True
    enable_debug_logging: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Preferences":
        known = {item.name: item for item in fields(cls)}
        prefs = cls()
        for key, value in (data or {}).items():
            if key not in known:
                continue
            default = getattr(prefs, key)
            setattr(prefs, key, bool(value) if isinstance(default, bool) else str(value))
        if prefs.publish_excerpt and prefs.publish_hidden:
            prefs.publish_hidden = False
        return prefs

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SettingsStore:
    """Loads the state blob once, merges it over defaults and saves after every mutation."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._destinations: list[Destination] = []
        self._selected_index = 0
        self._preferences = Preferences()
        self._mappings: dict[str, PostMapping] = {}
        self.publish_log = PublishLog(on_change=self.save)
        self.debug_log = DebugLog(
            is_enabled=lambda: self._preferences.enable_debug_logging, on_change=self.save
        )

    @classmethod
    def open(cls, path: Path) -> "SettingsStore":
        store = cls(path)
        store.load()
        return store

    def load(self) -> None:
        raw: dict[str, Any] = {}
        if self._path.exists():
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError(f"Invalid settings file: {self._path}")

        self._destinations = [
            Destination.from_dict(item)
            for item in raw.get("destinations", [])
            if isinstance(item, Mapping)
        ][:MAX_DESTINATIONS]
        self._selected_index = int(raw.get("selected_destination_index", 0) or 0)
        self._preferences = Preferences.from_dict(raw.get("preferences"))
        self._mappings = {
            str(path): PostMapping(
                file_path=str(path),
                filename_base=str(item.get("filename_base", "")),
                last_published=str(item.get("last_published", "")),
            )
            for path, item in raw.get("published_posts", {}).items()
            if isinstance(item, Mapping) and item.get("filename_base")
        }
        self.publish_log = PublishLog(
            (PublishLogEntry.from_dict(item) for item in raw.get("publish_log", [])),
            on_change=self.save,
        )
        self.debug_log = DebugLog(
            (DebugLogEntry.from_dict(item) for item in raw.get("debug_log", [])),
            is_enabled=lambda: self._preferences.enable_debug_logging,
            on_change=self.save,
        )

        if self._migrate(raw):
            self.save()

    def _migrate(self, raw: Mapping[str, Any]) -> bool:
        legacy_url = raw.get("pouch_url") or raw.get("pouchUrl")
        legacy_key = raw.get("api_key") or raw.get("apiKey")
        migrated = False
        if legacy_url and legacy_key and not self._destinations:
            self._destinations.append(
                Destination(name="default", url=str(legacy_url), api_key=str(legacy_key))
            )
            self._selected_index = 0
            migrated = True
            LOGGER.info(
                "Migrated legacy single-destination settings",
                extra={"event": "settings.migrated", "path": str(self._path)},
            )
        for item in raw.get("destinations", []):
            if isinstance(item, Mapping) and "magazine_mode" not in item:
                migrated = True
        return migrated

    def save(self) -> None:
        """Write the whole blob; the transcription worker may save concurrently."""
        with self._lock:
            payload = {
                "destinations": [dest.to_dict() for dest in self._destinations],
                "selected_destination_index": self._selected_index,
                "preferences": self._preferences.to_dict(),
                "published_posts": {
                    path: item.to_dict() for path, item in self._mappings.items()
                },
                "publish_log": [entry.to_dict() for entry in self.publish_log],
                "debug_log": [entry.to_dict() for entry in self.debug_log],
            }
            atomic_write_text(
                self._path, json.dumps(payload, ensure_ascii=False, indent=2), private=True
            )

    # Destinations ---------------------------------------------------------

    @property
    def destinations(self) -> list[Destination]:
        return list(self._destinations)

    @property
    def selected_index(self) -> int:
        if not self._destinations:
            return 0
        return max(0, min(self._selected_index, len(self._destinations) - 1))

    def selected_destination(self) -> Destination | None:
        if not self._destinations:
            return None
        return self._destinations[self.selected_index]

    def destination_at(self, index: int) -> Destination | None:
        if 0 <= index < len(self._destinations):
            return self._destinations[index]
        return None

    def select_destination(self, index: int) -> int:
        if not self._destinations:
            raise DestinationError("No destinations configured")
        self._selected_index = max(0, min(index, len(self._destinations) - 1))
        self.save()
        return self._selected_index

    def add_destination(
        self,
        *,
        name: str | None = None,
        url: str = "",
        api_key: str = "",
        magazine_mode: bool = False,
    ) -> Destination:
        if len(self._destinations) >= MAX_DESTINATIONS:
            raise DestinationError(
                f"At most {MAX_DESTINATIONS} destinations can be configured",
                details={"count": len(self._destinations)},
            )
        default_name = f"dest{len(self._destinations) + 1}"
        destination = Destination(
            name=self._checked_name(name if name is not None else default_name),
            url=url,
            api_key=api_key,
            magazine_mode=magazine_mode,
        )
        self._destinations.append(destination)
        self.save()
        return destination

    def update_destination(self, index: int, **changes: Any) -> Destination:
        destination = self.destination_at(index)
        if destination is None:
            raise DestinationError(f"No destination at index {index}")
        if "name" in changes and changes["name"] is not None:
            destination.name = self._checked_name(changes["name"], ignore=index)
        if changes.get("url") is not None:
            destination.url = str(changes["url"])
        if changes.get("api_key") is not None:
            destination.api_key = str(changes["api_key"])
        if changes.get("magazine_mode") is not None:
            destination.magazine_mode = bool(changes["magazine_mode"])
        self.save()
        return destination

    def remove_destination(self, index: int) -> Destination:
        if self.destination_at(index) is None:
            raise DestinationError(f"No destination at index {index}")
        removed = self._destinations.pop(index)
        if self._selected_index >= len(self._destinations):
            self._selected_index = max(0, len(self._destinations) - 1)
        self.save()
        return removed

    def _checked_name(self, value: str, *, ignore: int | None = None) -> str:
        name = sanitize_destination_name(value)
        if not name:
            raise DestinationError("Destination shortname must not be empty")
        for position, other in enumerate(self._destinations):
            if position != ignore and other.name == name:
                raise DestinationError(
                    f"Destination shortname '{name}' is already in use", details={"index": position}
                )
        return name

    # Preferences ----------------------------------------------------------

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    def update_preferences(self, **changes: Any) -> Preferences:
        merged = self._preferences.to_dict()
        merged.update({key: value for key, value in changes.items() if value is not None})
        self._preferences = Preferences.from_dict(merged)
        self.save()
        return self._preferences

    # Post mappings --------------------------------------------------------

    def get_mapping(self, file_path: str) -> PostMapping | None:
        return self._mappings.get(file_path)

    def upsert_mapping(self, file_path: str, filename_base: str) -> PostMapping:
        mapping = PostMapping(
            file_path=file_path, filename_base=filename_base, last_published=utc_timestamp()
        )
        self._mappings[file_path] = mapping
        self.save()
        return mapping


__all__ = [
    "MAX_DESTINATIONS",
    "MAX_NAME_LENGTH",
    "Destination",
    "PostMapping",
    "Preferences",
    "SettingsStore",
    "sanitize_destination_name",
]
