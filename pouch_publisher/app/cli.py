"""Command-line interface for publishing vault notes to Pouch destinations."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import fields
from typing import Any, Callable, Sequence

from ..core.errors import DestinationError
from ..core.state import Destination, Preferences, SettingsStore
from ..core.vault import Vault
from ..services.front_matter import read_publish_status
from ..services.publish_models import EDITING_STATUSES, PublishOutcome
from ..services.publish_options import (
    Intent,
    SelectDestination,
    SetEditingStatus,
    SetText,
    Toggle,
    apply_intents,
    needs_status_confirmation,
)
from ..services.publish_workflow import PouchPublishWorkflow
from ..settings import AppConfig, load_config
from ..utils.logging import REDACTED, configure_logging, get_logger

LOGGER = get_logger(__name__)

Handler = Callable[[argparse.Namespace, AppConfig], int]

# (argument dest, options field) pairs for the --options flow.
_TEXT_ARGS = (("slug", "slug"), ("tags", "tags"), ("template", "template"))
_TOGGLE_ARGS = (
    ("internal", "publish_internal"),
    ("public", "publish_public"),
    ("excerpt", "excerpt"),
    ("hidden", "hidden"),
    ("podcast", "include_in_podcast"),
    ("publish_immediately", "publish_immediately"),
    ("remove_silence", "remove_silence"),
    ("transcription", "enable_transcription"),
    ("ai_transcript", "improve_transcript_with_ai"),
    ("remember", "remember_settings"),
)
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    handler: Handler | None = getattr(args, "handler", None)
    if handler is None:
        parser.print_help(sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    configure_logging(
        level=config.logging.level,
        structured=config.logging.structured and not args.log_plain,
    )

    try:
        return handler(args, config)
    except DestinationError as exc:
        LOGGER.error(
            "Destination error",
            extra={"event": "cli.error", "command": args.command, "reason": exc.message},
        )
        print(exc.message, file=sys.stderr)
        return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pouch", description="Publish notes to Pouch")
    parser.add_argument("--config", help="Path to configuration file", default=None)
    parser.add_argument(
        "--log-plain",
        action="store_true",
        help="Use plain-text logs instead of JSON",
    )

    subparsers = parser.add_subparsers(dest="command")

    _add_publish_commands(subparsers)
    _add_destination_commands(subparsers)
    _add_log_commands(subparsers)
    _add_preference_commands(subparsers)

    return parser


def _add_publish_commands(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    publish_parser = subparsers.add_parser("publish", help="Publish a note")
    publish_parser.add_argument("note", help="Note path, relative to the vault or absolute")
    publish_parser.add_argument(
        "--options",
        action="store_true",
        help="Start from the options form instead of one-click defaults",
    )
    publish_parser.add_argument("--destination", type=int, help="Destination index (options flow)")
    publish_parser.add_argument("--slug", help="Override the generated slug")
    publish_parser.add_argument("--tags", help="Comma separated tags")
    publish_parser.add_argument("--template", help="Post template name")
    publish_parser.add_argument(
        "--status",
        choices=EDITING_STATUSES,
        help="Editing status (magazine-mode destinations only)",
    )
    for flag, help_text in (
        ("--internal", "Publish to the internal site"),
        ("--public", "Publish to the public site"),
        ("--excerpt", "Show only an excerpt publicly"),
        ("--hidden", "Hide the public post from listings"),
        ("--podcast", "Include the audio in the podcast feed"),
        ("--publish-immediately", "Publish the podcast episode right away"),
        ("--remove-silence", "Ask the server to strip silence from the audio"),
        ("--transcription", "Transcribe uploaded audio"),
        ("--ai-transcript", "Improve the transcript with AI"),
        ("--remember", "Remember these choices as defaults"),
    ):
        publish_parser.add_argument(
            flag, action=argparse.BooleanOptionalAction, default=None, help=help_text
        )
    publish_parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm moving a submitted post back to draft or feedback",
    )
    publish_parser.add_argument(
        "--no-wait",
        dest="wait",
        action="store_false",
        help=(
            "Do not print the transcription notice "
            "(the process still exits only after the trigger request finishes)"
        ),
    )
    publish_parser.set_defaults(handler=_handle_publish)

    status_parser = subparsers.add_parser("status", help="Show publish status of a note")
    status_parser.add_argument("note", help="Note path, relative to the vault or absolute")
    status_parser.set_defaults(handler=_handle_status)


def _add_destination_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    dest_parser = subparsers.add_parser("destinations", help="Manage Pouch destinations")
    dest_subparsers = dest_parser.add_subparsers(dest="destination_command", required=True)

    list_parser = dest_subparsers.add_parser("list", help="List configured destinations")
    list_parser.set_defaults(handler=_handle_destinations_list)

    add_parser = dest_subparsers.add_parser("add", help="Add a destination")
    add_parser.add_argument("--name", help="Shortname (max 7 characters, no spaces)")
    add_parser.add_argument("--url", required=True, help="Base URL of the Pouch instance")
    add_parser.add_argument("--api-key", dest="api_key", required=True, help="API key")
    add_parser.add_argument("--magazine", action="store_true", help="Enable magazine mode")
    add_parser.set_defaults(handler=_handle_destinations_add)

    update_parser = dest_subparsers.add_parser("update", help="Change a destination")
    update_parser.add_argument("index", type=int)
    update_parser.add_argument("--name")
    update_parser.add_argument("--url")
    update_parser.add_argument("--api-key", dest="api_key")
    update_parser.add_argument("--magazine", action=argparse.BooleanOptionalAction, default=None)
    update_parser.set_defaults(handler=_handle_destinations_update)

    remove_parser = dest_subparsers.add_parser("remove", help="Remove a destination")
    remove_parser.add_argument("index", type=int)
    remove_parser.set_defaults(handler=_handle_destinations_remove)

    select_parser = dest_subparsers.add_parser("select", help="Select the one-click destination")
    select_parser.add_argument("index", type=int)
    select_parser.set_defaults(handler=_handle_destinations_select)


def _add_log_commands(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    log_parser = subparsers.add_parser("log", help="Inspect the publish or debug log")
    log_subparsers = log_parser.add_subparsers(dest="log_command", required=True)

    show_parser = log_subparsers.add_parser("show", help="Print log entries, newest first")
    show_parser.add_argument("--debug", action="store_true", help="Show the debug trace")
    show_parser.add_argument("--limit", type=int, default=None, help="Maximum entries to print")
    show_parser.set_defaults(handler=_handle_log_show)

    clear_parser = log_subparsers.add_parser("clear", help="Remove all log entries")
    clear_parser.add_argument("--debug", action="store_true", help="Clear the debug trace")
    clear_parser.set_defaults(handler=_handle_log_clear)

    debug_parser = subparsers.add_parser("debug", help="Toggle the debug trace")
    debug_parser.add_argument("state", choices=("on", "off"))
    debug_parser.set_defaults(handler=_handle_debug_toggle)


def _add_preference_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    prefs_parser = subparsers.add_parser("prefs", help="Show or change publish defaults")
    prefs_subparsers = prefs_parser.add_subparsers(dest="prefs_command", required=True)

    show_parser = prefs_subparsers.add_parser("show", help="Print stored preferences")
    show_parser.set_defaults(handler=_handle_prefs_show)

    set_parser = prefs_subparsers.add_parser("set", help="Change one preference")
    set_parser.add_argument("key")
    set_parser.add_argument("value")
    set_parser.set_defaults(handler=_handle_prefs_set)


# Publishing ---------------------------------------------------------------


def _handle_publish(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    workflow = PouchPublishWorkflow.from_config(config, store)
    vault_path = _note_path(workflow.vault, args.note)
    if vault_path is None:
        return 2

    LOGGER.info(
        "Publishing note",
        extra={"event": "cli.command", "command": "publish", "path": vault_path, "options": args.options},
    )

    if args.options:
        options = workflow.initial_options(vault_path)
        initial_status = options.editing_status
        options = apply_intents(options, _publish_intents(args, len(store.destinations)))
        destination = store.destination_at(options.destination_index)
        if args.status is not None and not (destination and destination.magazine_mode):
            print("--status is only accepted for magazine-mode destinations", file=sys.stderr)
            return 2
        if needs_status_confirmation(initial_status, options.editing_status) and not args.yes:
            print(
                f"This post is currently in submission. Changing it to "
                f"'{options.editing_status}' may unpublish it. Re-run with --yes to confirm.",
                file=sys.stderr,
            )
            return 2
        outcome = workflow.publish_with_options(vault_path, options)
    else:
        outcome = workflow.publish_note(vault_path)

    _print_outcome(outcome)
    if outcome.transcription is not None and args.wait:
        print(outcome.transcription.result())
    return 0 if outcome.success else 1


def _publish_intents(args: argparse.Namespace, available: int) -> list[Intent]:
    """Translate command-line flags into the same intents the options form accepts."""
    intents: list[Intent] = []
    if args.destination is not None:
        intents.append(SelectDestination(args.destination, available))
    for dest, field_name in _TEXT_ARGS:
        value = getattr(args, dest)
        if value is not None:
            intents.append(SetText(field_name, value))
    # Transcription first so an explicit --ai-transcript can follow it.
    for dest, field_name in sorted(_TOGGLE_ARGS, key=lambda item: item[0] != "transcription"):
        value = getattr(args, dest)
        if value is not None:
            intents.append(Toggle(field_name, value))
    if args.status is not None:
        intents.append(SetEditingStatus(args.status))
    return intents


def _print_outcome(outcome: PublishOutcome) -> None:
    if outcome.success:
        verb = "updated" if outcome.is_update else "published"
        print(f"Post {verb}: {outcome.title}")
        if outcome.url:
            print(f"{outcome.url_label}: {outcome.url}")
    else:
        message = outcome.error.message if outcome.error else "Unknown error"
        print(f"Publish failed: {message}", file=sys.stderr)
    for notice in outcome.notices:
        print(notice)


def _handle_status(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    vault = Vault(config.paths.vault_root)
    vault_path = _note_path(vault, args.note)
    if vault_path is None:
        return 2
    status = read_publish_status(vault.read_text(vault_path))
    mapping = store.get_mapping(vault_path)

    payload: dict[str, Any] = {"path": vault_path, "published": status is not None}
    if status is not None:
        payload.update(
            destination=status.destination, url=status.url, editing_status=status.editing_status
        )
    if mapping is not None:
        payload.update(filename_base=mapping.filename_base, last_published=mapping.last_published)
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


# Destinations ---------------------------------------------------------------


def _handle_destinations_list(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    destinations = store.destinations
    if not destinations:
        print("<no-destinations>")
        return 0
    for index, destination in enumerate(destinations):
        marker = "*" if index == store.selected_index else " "
        print(f"{marker} {index}  {_describe(destination)}")
    return 0


def _handle_destinations_add(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    destination = store.add_destination(
        name=args.name, url=args.url, api_key=args.api_key, magazine_mode=args.magazine
    )
    LOGGER.info(
        "Destination added",
        extra={"event": "cli.command", "command": "destinations.add", "destination": destination.name},
    )
    print(f"Added {_describe(destination)}")
    return 0


def _handle_destinations_update(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    destination = store.update_destination(
        args.index,
        name=args.name,
        url=args.url,
        api_key=args.api_key,
        magazine_mode=args.magazine,
    )
    print(f"Updated {_describe(destination)}")
    return 0


def _handle_destinations_remove(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    removed = store.remove_destination(args.index)
    print(f"Removed {removed.name}")
    return 0


def _handle_destinations_select(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    index = store.select_destination(args.index)
    destination = store.destination_at(index)
    print(f"Selected {destination.name if destination else index}")
    return 0


def _describe(destination: Destination) -> str:
    mode = " [magazine]" if destination.magazine_mode else ""
    key = REDACTED if destination.api_key else "<no key>"
    return f"{destination.name}  {destination.url}  {key}{mode}"


# Logs & preferences -----------------------------------------------------------


def _handle_log_show(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    log = store.debug_log if args.debug else store.publish_log
    entries = log.entries[: args.limit] if args.limit is not None else log.entries
    if not entries:
        print("<empty>")
        return 0
    for entry in entries:
        print(json.dumps(entry.to_dict(), ensure_ascii=False, default=str))
    return 0


def _handle_log_clear(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    log = store.debug_log if args.debug else store.publish_log
    log.clear()
    print("Debug log cleared" if args.debug else "Publish log cleared")
    return 0


def _handle_debug_toggle(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    store.update_preferences(enable_debug_logging=args.state == "on")
    print(f"Debug logging {args.state}")
    return 0


def _handle_prefs_show(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    print(json.dumps(store.preferences.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _handle_prefs_set(args: argparse.Namespace, config: AppConfig) -> int:
    store = _open_store(config)
    try:
        value = _parse_preference(args.key, args.value)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    prefs = store.update_preferences(**{args.key: value})
    print(json.dumps(prefs.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _parse_preference(key: str, raw: str) -> bool | str:
    known = {item.name: item for item in fields(Preferences)}
    if key not in known:
        raise ValueError(f"Unknown preference: {key}")
    if not isinstance(getattr(Preferences(), key), bool):
        return raw
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Expected a boolean for {key}, got {raw!r}")


def _note_path(vault: Vault, note: str) -> str | None:
    try:
        vault_path = vault.relative_path(note)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return None
    if vault.get_file(vault_path) is None:
        print(f"Note not found: {note}", file=sys.stderr)
        return None
    return vault_path


def _open_store(config: AppConfig) -> SettingsStore:
    return SettingsStore.open(config.paths.state_file)


__all__ = ["main"]
