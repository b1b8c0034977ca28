"""Hand-built ``multipart/form-data`` bodies for the audio upload endpoint."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from typing import Sequence

BOUNDARY_PREFIX = "----PouchFormBoundary"
_CRLF = b"\r\n"
_BOUNDARY_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(slots=True)
class FilePart:
    field_name: str
    file_name: str
    mime_type: str
    data: bytes


def make_boundary() -> str:
    token = "".join(secrets.choice(_BOUNDARY_ALPHABET) for _ in range(16))
    return BOUNDARY_PREFIX + token


def encode_multipart(
    fields: Sequence[tuple[str, str]],
    file_part: FilePart,
    *,
    boundary: str | None = None,
) -> tuple[str, bytes]:
    """Return ``(boundary, body)`` with text fields first, in caller order, then the file.

    Values are inserted verbatim; callers pass pre-sanitised text.
    """
    boundary = boundary or make_boundary()
    delimiter = f"--{boundary}".encode("utf-8")
    chunks: list[bytes] = []

    for name, value in fields:
        chunks.append(delimiter + _CRLF)
        chunks.append(f'Content-Disposition: form-data; name="{name}"'.encode("utf-8") + _CRLF * 2)
        chunks.append(value.encode("utf-8") + _CRLF)

    chunks.append(delimiter + _CRLF)
    chunks.append(
        (
            f'Content-Disposition: form-data; name="{file_part.field_name}"; '
            f'filename="{file_part.file_name}"'
        ).encode("utf-8")
        + _CRLF
    )
    chunks.append(f"Content-Type: {file_part.mime_type}".encode("utf-8") + _CRLF * 2)
    chunks.append(file_part.data)
    chunks.append(_CRLF)

    chunks.append(delimiter + b"--" + _CRLF)
    return boundary, b"".join(chunks)


def content_type_for(boundary: str) -> str:
    return f"multipart/form-data; boundary={boundary}"


__all__ = ["BOUNDARY_PREFIX", "FilePart", "content_type_for", "encode_multipart", "make_boundary"]
