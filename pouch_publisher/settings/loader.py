"""Helpers for loading configuration from ``config.toml``."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_NAME = "config.toml"
CONFIG_ENV_VAR = "POUCH_CONFIG"

DEFAULT_AI_MODEL = "mistral-ai/mistral-small-2503"
DEFAULT_AI_PROVIDER = "github-models"
DEFAULT_MAX_AUDIO_MB = 25


@dataclass(slots=True)
class HttpSettings:
    timeout: float


@dataclass(slots=True)
class PathSettings:
    vault_root: Path
    state_file: Path


@dataclass(slots=True)
class AudioSettings:
    max_size_mb: float = DEFAULT_MAX_AUDIO_MB


@dataclass(slots=True)
class TranscriptionSettings:
    """Model hints forwarded to the server when AI transcript cleanup is requested."""

    ai_model: str = DEFAULT_AI_MODEL
    ai_provider: str = DEFAULT_AI_PROVIDER


@dataclass(slots=True)
class LoggingSettings:
    structured: bool = True
    level: int = logging.INFO


@dataclass(slots=True)
class AppConfig:
    http: HttpSettings
    paths: PathSettings
    audio: AudioSettings
    transcription: TranscriptionSettings
    logging: LoggingSettings


def _to_path(value: str | None, *, fallback: Path) -> Path:
    if not value:
        return fallback
    candidate = Path(value).expanduser()
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _config_path(explicit: str | os.PathLike[str] | None = None) -> tuple[Path, bool]:
    """Return the config path and whether the caller asked for it explicitly."""
    if explicit:
        candidate = Path(explicit)
        required = True
    else:
        env_value = os.environ.get(CONFIG_ENV_VAR)
        candidate = Path(env_value) if env_value else PROJECT_ROOT / DEFAULT_CONFIG_NAME
        required = bool(env_value)
    resolved = candidate if candidate.is_absolute() else PROJECT_ROOT / candidate
    return resolved, required


def _load_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Config file not found: {path}")
        return {}
    with path.open("rb") as fp:
        return tomllib.load(fp)


def _parse_level(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        level = logging.getLevelName(value.strip().upper())
        if isinstance(level, int):
            return level
        raise ValueError(f"Unknown logging level: {value}")
    return logging.INFO


def load_config(config_path: str | os.PathLike[str] | None = None) -> AppConfig:
    path, required = _config_path(config_path)
    data = _load_toml(path, required=required)

    paths_section = data.get("paths", {})
    http_section = data.get("http", {})
    audio_section = data.get("audio", {})
    transcription_section = data.get("transcription", {})
    logging_section = data.get("logging", {})

    vault_root = _to_path(paths_section.get("vault_root"), fallback=PROJECT_ROOT / "vault")
    state_file = _to_path(
        paths_section.get("state_file"), fallback=PROJECT_ROOT / "data" / "state" / "publisher.json"
    )

    max_size_mb = float(audio_section.get("max_size_mb", DEFAULT_MAX_AUDIO_MB))
    if max_size_mb <= 0:
        raise ValueError("audio.max_size_mb must be positive")

    return AppConfig(
        http=HttpSettings(timeout=float(http_section.get("timeout", 30))),
        paths=PathSettings(vault_root=vault_root, state_file=state_file),
        audio=AudioSettings(max_size_mb=max_size_mb),
        transcription=TranscriptionSettings(
            ai_model=str(transcription_section.get("ai_model") or DEFAULT_AI_MODEL),
            ai_provider=str(transcription_section.get("ai_provider") or DEFAULT_AI_PROVIDER),
        ),
        logging=LoggingSettings(
            structured=bool(logging_section.get("structured", True)),
            level=_parse_level(logging_section.get("level")),
        ),
    )
