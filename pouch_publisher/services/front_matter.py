"""Reads and rewrites the publish-tracking keys in a note's front matter block."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import yaml

from pouch_publisher.core.errors import MetadataWriteError
from pouch_publisher.core.vault import Vault
from pouch_publisher.utils.logging import get_logger

LOGGER = get_logger(__name__)

DESTINATION_KEY = "pouch_destination"
URL_KEY = "pouch_url"
STATUS_KEY = "editing_status"
DELIMITER = "---"


@dataclass(slots=True)
class PublishStatus:
    destination: str
    url: str
    editing_status: str | None = None


def _is_delimiter(line: str) -> bool:
    return line.rstrip("\r") == DELIMITER


def split_front_matter(text: str) -> tuple[list[str] | None, list[str]]:
    """Return ``(front_matter_lines, body_lines)``; the first item is ``None`` without a block."""
    lines = text.split("\n")
    if not lines or not _is_delimiter(lines[0]):
        return None, lines
    for index in range(1, len(lines)):
        if _is_delimiter(lines[index]):
            return lines[1:index], lines[index + 1 :]
    return None, lines


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _unquote(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        try:
            return str(json.loads(value))
        except ValueError:
            return value[1:-1]
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")
    return value


def _parse_flat(block: list[str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for line in block:
        key, sep, raw = line.rstrip("\r").partition(":")
        if not sep or not key or key[0].isspace():
            continue
        values[key.strip()] = _unquote(raw)
    return values


def parse_front_matter(text: str) -> dict[str, Any]:
    """Parse the block as YAML, falling back to flat ``key: value`` lines when it is malformed."""
    block, _ = split_front_matter(text)
    if not block:
        return {}
    try:
        data = yaml.safe_load("\n".join(line.rstrip("\r") for line in block))
    except yaml.YAMLError:
        LOGGER.debug("Front matter is not valid YAML", extra={"event": "frontmatter.invalid"})
        return _parse_flat(block)
    return data if isinstance(data, dict) else {}


def read_publish_status(text: str) -> PublishStatus | None:
    values = parse_front_matter(text)
    destination = values.get(DESTINATION_KEY)
    if not destination:
        return None
    status = values.get(STATUS_KEY)
    return PublishStatus(
        destination=str(destination),
        url=str(values.get(URL_KEY) or ""),
        editing_status=str(status) if status else None,
    )


def rewrite_front_matter(
    text: str,
    destination_name: str,
    url: str,
    editing_status: str | None = None,
) -> str:
    """Upsert the managed keys, keeping every other line verbatim and in order.

    An existing ``editing_status`` is left untouched when no new status is given.
    """
    block, body = split_front_matter(text)
    destination_line = f"{DESTINATION_KEY}: {_quote(destination_name)}"
    url_line = f"{URL_KEY}: {_quote(url)}"
    status_line = f"{STATUS_KEY}: {_quote(editing_status)}" if editing_status else None

    if block is None:
        header = [DELIMITER, destination_line, url_line]
        if status_line:
            header.append(status_line)
        header.append(DELIMITER)
        return "\n".join(header + body)

    updated: list[str] = []
    seen = {DESTINATION_KEY: False, URL_KEY: False, STATUS_KEY: False}
    for line in block:
        if line.startswith(f"{DESTINATION_KEY}:"):
            updated.append(destination_line)
            seen[DESTINATION_KEY] = True
        elif line.startswith(f"{URL_KEY}:"):
            updated.append(url_line)
            seen[URL_KEY] = True
        elif line.startswith(f"{STATUS_KEY}:"):
            updated.append(status_line or line)
            seen[STATUS_KEY] = True
        else:
            updated.append(line)

    if not seen[DESTINATION_KEY]:
        updated.append(destination_line)
    if not seen[URL_KEY]:
        updated.append(url_line)
    if not seen[STATUS_KEY] and status_line:
        updated.append(status_line)

    return "\n".join([DELIMITER, *updated, DELIMITER, *body])


class FrontMatterSynchronizer:
    """Applies :func:`rewrite_front_matter` to a note stored in the vault."""

    def __init__(self, vault: Vault) -> None:
        self._vault = vault

    def update(
        self,
        vault_path: str,
        destination_name: str,
        url: str,
        editing_status: str | None = None,
    ) -> None:
        try:
            original = self._vault.read_text(vault_path)
            self._vault.write_text(
                vault_path, rewrite_front_matter(original, destination_name, url, editing_status)
            )
        except (OSError, UnicodeError) as exc:
            raise MetadataWriteError(
                "Could not update front matter", details={"path": vault_path, "reason": str(exc)}
            ) from exc
        LOGGER.info(
            "Updated front matter",
            extra={"event": "frontmatter.updated", "path": vault_path, "destination": destination_name},
        )


__all__ = [
    "DESTINATION_KEY",
    "FrontMatterSynchronizer",
    "PublishStatus",
    "STATUS_KEY",
    "URL_KEY",
    "parse_front_matter",
    "read_publish_status",
    "rewrite_front_matter",
    "split_front_matter",
]
