"""Detection, resolution and validation of the audio file referenced by a note."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from pouch_publisher.core.vault import Vault
from pouch_publisher.utils.text import size_in_mb

AUDIO_EXTENSIONS = (
    "wav", "mp3", "m4a", "caf", "aac", "ogg", "oga", "flac", "webm", "opus", "aif", "aiff", "amr",
)
VIDEO_EXTENSIONS = ("m4v", "mp4", "mov", "avi", "mkv", "3gp", "3g2")

MIME_TYPES = {
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "caf": "audio/x-caf",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "oga": "audio/ogg",
    "flac": "audio/flac",
    "webm": "audio/webm",
    "opus": "audio/opus",
    "aif": "audio/aiff",
    "aiff": "audio/aiff",
    "amr": "audio/amr",
}
DEFAULT_MIME_TYPE = "audio/mpeg"

VIDEO_REJECTED = (
    "Video files are not allowed. Please select an audio file (e.g., MP3, WAV, M4A, OGG, FLAC)."
)
NOT_AUDIO = "Please select a valid audio file (e.g., MP3, WAV, M4A, OGG, FLAC)."

_EXTENSIONS = "|".join(AUDIO_EXTENSIONS)
# Compiled patterns are stateless, so sharing them between calls is safe.
_EMBED_PATTERN = re.compile(rf"!\[\[([^\]]+\.({_EXTENSIONS}))\]\]", re.IGNORECASE)
_WIKI_PATTERN = re.compile(rf"\[\[([^\]]+\.({_EXTENSIONS}))\]\]", re.IGNORECASE)
_LINK_PATTERN = re.compile(rf"\[([^\]]+)\]\(([^)]+\.({_EXTENSIONS}))\)", re.IGNORECASE)

SYNTAX_EMBED = "embed"
SYNTAX_WIKI = "wiki"
SYNTAX_LINK = "link"


@dataclass(slots=True, frozen=True)
class AudioReference:
    """An audio path exactly as written in the note, plus the syntax that matched."""

    path: str
    syntax: str

    @property
    def stripped_from_body(self) -> bool:
        return self.syntax == SYNTAX_EMBED


@dataclass(slots=True)
class AudioAsset:
    reference: str
    vault_path: str
    extension: str
    size: int

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.vault_path).name

    @property
    def mime_type(self) -> str:
        return MIME_TYPES.get(self.extension, DEFAULT_MIME_TYPE)


@dataclass(slots=True)
class AudioValidation:
    valid: bool
    error: str | None = None


def detect_audio(text: str) -> AudioReference | None:
    """Return the first audio reference, trying embed, wiki link, then inline link syntax.

    A higher-priority syntax wins even when a lower-priority one appears earlier.
    """
    match = _EMBED_PATTERN.search(text)
    if match:
        return AudioReference(path=match.group(1), syntax=SYNTAX_EMBED)
    match = _WIKI_PATTERN.search(text)
    if match:
        return AudioReference(path=match.group(1), syntax=SYNTAX_WIKI)
    match = _LINK_PATTERN.search(text)
    if match:
        return AudioReference(path=match.group(2), syntax=SYNTAX_LINK)
    return None


def strip_audio_embeds(text: str) -> str:
    """Remove ``![[file.ext]]`` audio embeds; wiki and inline links are left alone."""
    return _EMBED_PATTERN.sub("", text)


def resolve_audio(reference: str, document_path: str, vault: Vault) -> AudioAsset | None:
    """Look the reference up vault-wide first, then next to the note.

    A folder at the vault-wide path ends the lookup.
    """
    vault_path = reference if vault.get_file(reference) is not None else None
    if vault_path is None and vault.exists(reference):
        return None
    if vault_path is None:
        folder = PurePosixPath(document_path).parent.as_posix()
        candidate = reference if folder in ("", ".") else f"{folder}/{reference}"
        if vault.get_file(candidate) is not None:
            vault_path = candidate
    if vault_path is None:
        return None

    extension = PurePosixPath(vault_path).suffix.lstrip(".").lower()
    return AudioAsset(
        reference=reference,
        vault_path=vault_path.lstrip("/"),
        extension=extension,
        size=vault.size(vault_path.lstrip("/")),
    )


def validate_audio(asset: AudioAsset, *, max_size_mb: float) -> AudioValidation:
    if asset.extension in VIDEO_EXTENSIONS:
        return AudioValidation(valid=False, error=VIDEO_REJECTED)
    if asset.extension not in AUDIO_EXTENSIONS:
        return AudioValidation(valid=False, error=NOT_AUDIO)
    max_bytes = max_size_mb * 1024 * 1024
    if asset.size > max_bytes:
        return AudioValidation(
            valid=False,
            error=(
                f"File size ({size_in_mb(asset.size)} MB) exceeds the {max_size_mb:g} MB limit. "
                "Please select a smaller file."
            ),
        )
    return AudioValidation(valid=True)


__all__ = [
    "AUDIO_EXTENSIONS",
    "AudioAsset",
    "AudioReference",
    "AudioValidation",
    "DEFAULT_MIME_TYPE",
    "MIME_TYPES",
    "VIDEO_EXTENSIONS",
    "detect_audio",
    "resolve_audio",
    "strip_audio_embeds",
    "validate_audio",
]
