"""Small text helpers shared by the publishing flows."""

from __future__ import annotations

import re
from datetime import UTC, datetime

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Lower-case ``title`` and collapse every non-alphanumeric run into ``-``.

    >>> slugify("Hello, World! 123")
    'hello-world-123'
    """
    return _NON_SLUG.sub("-", title.lower()).strip("-")


def utc_timestamp() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def size_in_mb(size: int) -> str:
    return f"{size / (1024 * 1024):.2f}"


__all__ = ["slugify", "utc_timestamp", "size_in_mb"]
