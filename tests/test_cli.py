"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pouch_publisher.app import cli
from pouch_publisher.core.state import Preferences, SettingsStore
from pouch_publisher.services.publish_options import PublishOptions, apply_intents


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / "Post.md").write_text("Body", encoding="utf-8")
    path = tmp_path / "config.toml"
    path.write_text(
        f"""
[paths]
vault_root = "{vault.as_posix()}"
state_file = "{(tmp_path / 'state.json').as_posix()}"

[logging]
structured = false
""",
        encoding="utf-8",
    )
    return path


def _run(config_path: Path, *argv: str) -> int:
    return cli.main(["--config", str(config_path), *argv])


def test_destination_commands(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(config_path, "destinations", "add", "--url", "https://a", "--api-key", "k") == 0
    assert (
        _run(
            config_path,
            "destinations", "add", "--name", "blog", "--url", "https://b", "--api-key", "k",
            "--magazine",
        )
        == 0
    )
    assert _run(config_path, "destinations", "select", "1") == 0
    capsys.readouterr()

    assert _run(config_path, "destinations", "list") == 0
    out = capsys.readouterr().out
    assert "  0  dest1  https://a" in out
    assert "* 1  blog  https://b" in out
    assert "[magazine]" in out
    assert "k  " not in out

    assert _run(config_path, "destinations", "remove", "0") == 0
    store = SettingsStore.open(config_path.parent / "state.json")
    assert [dest.name for dest in store.destinations] == ["blog"]


def test_destination_error_exit_code(config_path: Path) -> None:
    assert _run(config_path, "destinations", "select", "0") == 2
    assert _run(config_path, "publish", "Post.md") == 2


def test_missing_config_exit_code(tmp_path: Path) -> None:
    assert cli.main(["--config", str(tmp_path / "missing.toml"), "prefs", "show"]) == 2


def test_prefs_and_debug_commands(config_path: Path) -> None:
    assert _run(config_path, "prefs", "set", "publish_public", "yes") == 0
    assert _run(config_path, "prefs", "set", "default_tags", "news,tech") == 0
    assert _run(config_path, "prefs", "set", "publish_public", "maybe") == 2
    assert _run(config_path, "prefs", "set", "nonsense", "1") == 2
    assert _run(config_path, "debug", "on") == 0

    prefs = SettingsStore.open(config_path.parent / "state.json").preferences
    assert prefs.publish_public
    assert prefs.default_tags == "news,tech"
    assert prefs.enable_debug_logging


def test_log_commands(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    store = SettingsStore.open(config_path.parent / "state.json")
    store.publish_log.record(title="Post", slug="post", url="https://x/p", success=True)
    capsys.readouterr()

    assert _run(config_path, "log", "show") == 0
    line = capsys.readouterr().out.strip().splitlines()[-1]
    assert json.loads(line)["slug"] == "post"

    assert _run(config_path, "log", "clear") == 0
    assert len(SettingsStore.open(config_path.parent / "state.json").publish_log) == 0


def test_status_command(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    note = config_path.parent / "vault" / "Post.md"
    note.write_text('---\npouch_destination: "main"\npouch_url: "https://x/p"\n---\nBody')

    assert _run(config_path, "status", str(note)) == 0
    out = capsys.readouterr().out
    payload = json.loads(out[out.index("{") :])
    assert payload["path"] == "Post.md"
    assert payload["destination"] == "main"
    assert payload["url"] == "https://x/p"


def test_publish_flags_become_intents() -> None:
    args = cli._build_parser().parse_args(
        [
            "publish", "Post.md", "--options", "--destination", "4", "--slug", "custom",
            "--ai-transcript", "--no-transcription", "--excerpt", "--hidden", "--status", "feedback",
        ]
    )
    initial = PublishOptions.initial(slug="post", preferences=Preferences(), destination_index=0)

    state = apply_intents(initial, cli._publish_intents(args, available=2))

    assert state.destination_index == 1
    assert state.slug == "custom"
    assert not state.enable_transcription
    assert not state.improve_transcript_with_ai
    assert state.hidden and not state.excerpt
    assert state.editing_status == "feedback"


def test_ai_transcript_follows_enabled_transcription() -> None:
    args = cli._build_parser().parse_args(
        ["publish", "Post.md", "--options", "--ai-transcript", "--transcription"]
    )
    initial = PublishOptions.initial(
        slug="post", preferences=Preferences(enable_transcription=False), destination_index=0
    )

    state = apply_intents(initial, cli._publish_intents(args, available=1))

    assert state.enable_transcription
    assert state.improve_transcript_with_ai


def test_publish_missing_note(config_path: Path) -> None:
    assert _run(config_path, "destinations", "add", "--url", "https://a", "--api-key", "k") == 0
    assert _run(config_path, "publish", "Missing.md") == 2
    assert _run(config_path, "status", "/elsewhere/Post.md") == 2


def test_status_flag_needs_magazine_destination(
    config_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run(config_path, "destinations", "add", "--url", "https://a", "--api-key", "k") == 0
    capsys.readouterr()

    assert _run(config_path, "publish", "Post.md", "--options", "--status", "feedback") == 2
    assert "magazine-mode" in capsys.readouterr().err
    assert len(SettingsStore.open(config_path.parent / "state.json").publish_log) == 0
