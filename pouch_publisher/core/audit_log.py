"""Bounded, newest-first audit trails for publishes and HTTP traffic."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Generic, Iterable, Iterator, Mapping, TypeVar

from ..utils.logging import REDACTED, get_logger
from ..utils.text import utc_timestamp

LOGGER = get_logger(__name__)

PUBLISH_LOG_CAPACITY = 100
DEBUG_LOG_CAPACITY = 50
TRUNCATE_AT = 500
_TRUNCATED_FIELDS = ("content", "markdown")

T = TypeVar("T")


@dataclass(slots=True)
class PublishLogEntry:
    timestamp: str
    title: str
    slug: str
    url: str
    success: bool
    error_code: str | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PublishLogEntry":
        return cls(
            timestamp=str(data.get("timestamp", "")),
            title=str(data.get("title", "")),
            slug=str(data.get("slug", "")),
            url=str(data.get("url", "")),
            success=bool(data.get("success", False)),
            error_code=data.get("error_code"),
            error_message=data.get("error_message"),
        )


@dataclass(slots=True)
class DebugLogEntry:
    timestamp: str
    kind: str
    message: str
    endpoint: str | None = None
    method: str | None = None
    request_data: dict[str, Any] | None = None
    response_status: int | None = None
    response_body: Any = None
    error_details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DebugLogEntry":
        return cls(
            timestamp=str(data.get("timestamp", "")),
            kind=str(data.get("kind", "info")),
            message=str(data.get("message", "")),
            endpoint=data.get("endpoint"),
            method=data.get("method"),
            request_data=data.get("request_data"),
            response_status=data.get("response_status"),
            response_body=data.get("response_body"),
            error_details=data.get("error_details"),
        )


class RingLog(Generic[T]):
    """Prepend-ordered list that drops its oldest entries past ``capacity``."""

    capacity = 0

    def __init__(
        self,
        entries: Iterable[T] | None = None,
        *,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._entries: list[T] = list(entries or [])[: self.capacity]
        self._on_change = on_change

    def add(self, entry: T) -> None:
        self._entries.insert(0, entry)
        del self._entries[self.capacity :]
        self._notify()

    def clear(self) -> None:
        self._entries.clear()
        self._notify()

    @property
    def entries(self) -> list[T]:
        return list(self._entries)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entries))

    def __getitem__(self, index: int) -> T:
        return self._entries[index]


class PublishLog(RingLog[PublishLogEntry]):
    capacity = PUBLISH_LOG_CAPACITY

    def record(
        self,
        *,
        title: str,
        slug: str,
        url: str = "",
        success: bool,
        error_code: str | None = None,
        error_message: str | None = None,
    ) -> PublishLogEntry:
        entry = PublishLogEntry(
            timestamp=utc_timestamp(),
            title=title,
            slug=slug,
            url=url,
            success=success,
            error_code=error_code,
            error_message=error_message,
        )
        self.add(entry)
        LOGGER.info(
            "Publish log entry added",
            extra={"event": "publish.logged", "slug": slug, "success": success},
        )
        return entry


def redact_request_data(data: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Mask the API key and shorten long body fields before they are stored."""
    if data is None:
        return None
    sanitized = dict(data)
    if sanitized.get("api_key"):
        sanitized["api_key"] = REDACTED
    for key in _TRUNCATED_FIELDS:
        value = sanitized.get(key)
        if isinstance(value, str) and len(value) > TRUNCATE_AT:
            sanitized[key] = (
                f"{value[:TRUNCATE_AT]}... [truncated, total length: {len(value)}]"
            )
    return sanitized


class DebugLog(RingLog[DebugLogEntry]):
    """Debug trace that only records while ``is_enabled()`` returns true.

    Persisting the trace is best-effort: a failed save is logged and dropped.
    """

    capacity = DEBUG_LOG_CAPACITY

    def __init__(
        self,
        entries: Iterable[DebugLogEntry] | None = None,
        *,
        is_enabled: Callable[[], bool] = lambda: False,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(entries, on_change=on_change)
        self._is_enabled = is_enabled

    @property
    def enabled(self) -> bool:
        return bool(self._is_enabled())

    def add(self, entry: DebugLogEntry) -> None:
        if not self.enabled:
            return
        super().add(entry)
        LOGGER.debug(entry.message, extra={"event": f"debug.{entry.kind}", "endpoint": entry.endpoint})

    def _notify(self) -> None:
        try:
            super()._notify()
        except OSError as exc:
            LOGGER.warning(
                "Could not persist debug log",
                extra={"event": "state.write_failed", "reason": str(exc)},
            )

    def request(
        self,
        endpoint: str,
        message: str,
        *,
        data: Mapping[str, Any] | None = None,
        method: str = "POST",
    ) -> None:
        self.add(
            DebugLogEntry(
                timestamp=utc_timestamp(),
                kind="request",
                message=message,
                endpoint=endpoint,
                method=method,
                request_data=redact_request_data(data),
            )
        )

    def response(self, endpoint: str | None, status: int, body: Any, message: str) -> None:
        self.add(
            DebugLogEntry(
                timestamp=utc_timestamp(),
                kind="response",
                message=message,
                endpoint=endpoint,
                response_status=status,
                response_body=body,
            )
        )

    def error(
        self,
        message: str,
        *,
        endpoint: str | None = None,
        status: int | None = None,
        body: Any = None,
        exc: BaseException | None = None,
    ) -> None:
        details = None
        if exc is not None:
            details = {"name": type(exc).__name__, "message": str(exc)}
        self.add(
            DebugLogEntry(
                timestamp=utc_timestamp(),
                kind="error",
                message=message,
                endpoint=endpoint,
                response_status=status,
                response_body=body,
                error_details=details,
            )
        )

    def info(self, message: str, *, body: Any = None) -> None:
        self.add(
            DebugLogEntry(
                timestamp=utc_timestamp(), kind="info", message=message, response_body=body
            )
        )


__all__ = [
    "DEBUG_LOG_CAPACITY",
    "PUBLISH_LOG_CAPACITY",
    "DebugLog",
    "DebugLogEntry",
    "PublishLog",
    "PublishLogEntry",
    "RingLog",
    "redact_request_data",
]
