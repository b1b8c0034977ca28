"""Tests for configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from pouch_publisher.settings import load_config
from pouch_publisher.settings import loader


def test_load_config_reads_sections(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        f"""
[paths]
vault_root = "{(tmp_path / 'vault').as_posix()}"
state_file = "data/state.json"

[http]
timeout = 12

[audio]
max_size_mb = 70

[transcription]
ai_model = "model-x"

[logging]
structured = false
level = "debug"
""",
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.paths.vault_root == tmp_path / "vault"
    assert config.paths.state_file == loader.PROJECT_ROOT / "data" / "state.json"
    assert config.http.timeout == 12.0
    assert config.audio.max_size_mb == 70
    assert config.transcription.ai_model == "model-x"
    assert config.transcription.ai_provider == loader.DEFAULT_AI_PROVIDER
    assert config.logging.structured is False
    assert config.logging.level == logging.DEBUG


def test_missing_default_config_uses_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv(loader.CONFIG_ENV_VAR, raising=False)
    monkeypatch.setattr(loader, "PROJECT_ROOT", tmp_path)

    config = load_config()

    assert config.paths.vault_root == tmp_path / "vault"
    assert config.audio.max_size_mb == loader.DEFAULT_MAX_AUDIO_MB
    assert config.transcription.ai_model == loader.DEFAULT_AI_MODEL
    assert config.logging.level == logging.INFO


def test_env_var_selects_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "alt.toml"
    config_path.write_text("[http]\ntimeout = 3\n", encoding="utf-8")
    monkeypatch.setenv(loader.CONFIG_ENV_VAR, str(config_path))

    assert load_config().http.timeout == 3.0


def test_missing_explicit_config_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.toml")


@pytest.mark.parametrize(
    "body",
    ['[logging]\nlevel = "chatty"\n', "[audio]\nmax_size_mb = 0\n"],
)
def test_invalid_values_raise(tmp_path: Path, body: str) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(config_path)
