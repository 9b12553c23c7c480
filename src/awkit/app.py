"""Command-line entry point running one transformation session over a file."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from . import __version__
from .core.errors import AwkitError
from .core.ranges import TextRange
from .editor.document_model import TextDocument
from .editor.headless import HeadlessSurface, MemoryClipboard
from .editor.undo import EditHistory
from .services.settings import COMMIT_ACTION_CHOICES, MODE_CHOICES, Settings, SettingsStore
from .session.controller import TransformController
from .session.state import CommitAction
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure logging for the command-line tool."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``awkit`` console script."""

    args = _parse_cli_args(argv)

    debug = args.debug or _env_flag("AWKIT_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("AWKIT_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2
    cli_overrides.update(_flag_overrides(args))

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return 0

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    if args.command is None:
        print("awkit: a command is required (use -c/--command)", file=sys.stderr)
        return 2

    try:
        text = _read_input(args.file)
        selection = _resolve_selection(text, region=args.region, lines=args.lines)
    except (OSError, ValueError) as exc:
        print(f"awkit: {exc}", file=sys.stderr)
        return 2

    return run_transform(
        text,
        args.command,
        settings=settings,
        selection=selection,
        action=args.action,
        stream=sys.stdout,
    )


def run_transform(
    text: str,
    command: str,
    *,
    settings: Settings,
    selection: TextRange | None = None,
    action: str | None = None,
    stream: TextIO | None = None,
    errors: TextIO | None = None,
) -> int:
    """Run one session over ``text`` and write the committed result to ``stream``.

    The document text is written for ``replace``, ``insert`` and ``discard``;
    ``copy`` writes the clipboard contents instead. Returns a process exit
    status: the tool's own status when it fails, ``1`` for session errors.
    """

    destination = stream or sys.stdout
    error_stream = errors or sys.stderr
    doc = TextDocument(text=text)
    span = selection if selection is not None else TextRange(0, len(text))
    surface = HeadlessSurface()
    clipboard = MemoryClipboard()
    controller = TransformController(
        surface,
        settings=settings,
        clipboard=clipboard,
        history=EditHistory(),
    )

    try:
        session = controller.start(doc, span)
        surface.insert_text(doc, session.command.start, command)
        result = asyncio.run(controller.run(doc))
        if not result.ok:
            error_stream.write(session.error_text())
            if not session.error_text().endswith("\n"):
                error_stream.write("\n")
            controller.abort(doc)
            return result.exit_code if result.exit_code > 0 else 1
        resolved = controller.exit(doc, action)
    except AwkitError as exc:
        controller.abort(doc)
        print(f"awkit: {exc.message}", file=error_stream)
        if exc.suggestion:
            print(f"awkit: {exc.suggestion}", file=error_stream)
        return 1

    if resolved is CommitAction.COPY:
        destination.write(clipboard.text or "")
    else:
        destination.write(doc.text)
    return 0


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _read_input(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).expanduser().read_text(encoding="utf-8")


def _resolve_selection(text: str, *, region: str | None, lines: str | None) -> TextRange:
    """Return the character span selected by ``--region`` or ``--lines``."""

    if region and lines:
        raise ValueError("--region and --lines are mutually exclusive")
    if region:
        start, end = _parse_pair(region, "--region")
        if start < 0 or end < 0:
            raise ValueError(f"--region {region} must not use negative offsets")
        span = TextRange(start, end)
        if span.end > len(text):
            raise ValueError(f"--region {region} extends past the end of the input ({len(text)} chars)")
        return span
    if lines:
        first, last = _parse_pair(lines, "--lines")
        return _line_span(text, first, last)
    return TextRange(0, len(text))


def _parse_pair(value: str, option: str) -> tuple[int, int]:
    if ":" not in value:
        raise ValueError(f"{option} must use A:B syntax")
    left, right = value.split(":", 1)
    try:
        return int(left, 10), int(right, 10)
    except ValueError as exc:
        raise ValueError(f"{option} bounds must be integers") from exc


def _line_span(text: str, first: int, last: int) -> TextRange:
    """Span of the 1-based inclusive lines ``first`` to ``last``."""

    if first < 1 or last < first:
        raise ValueError(f"--lines {first}:{last} is not a valid line range")
    offsets = [0]
    for line in text.splitlines(keepends=True):
        offsets.append(offsets[-1] + len(line))
    line_count = len(offsets) - 1
    if first > line_count:
        raise ValueError(f"--lines {first}:{last} starts past the last line ({line_count})")
    return TextRange(offsets[first - 1], offsets[min(last, line_count)])


def _flag_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.mode is not None:
        overrides["mode"] = args.mode
    if args.match is not None:
        overrides["match_expression"] = args.match
    if args.field_separator is not None:
        overrides["field_separator"] = args.field_separator
    if args.tool is not None:
        overrides["tool_command"] = args.tool
    return overrides


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="awkit",
        add_help=True,
        description="Pipe a region of a file through awk and print the committed result.",
    )
    parser.add_argument("file", nargs="?", help="Input file; reads stdin when omitted or '-'.")
    parser.add_argument("-c", "--command", help="Command text typed at the prompt.")
    parser.add_argument("-m", "--mode", choices=MODE_CHOICES, help="How the command becomes a script.")
    parser.add_argument(
        "-a",
        "--action",
        choices=COMMIT_ACTION_CHOICES,
        help="Commit action applied to the output (default: commit_action setting).",
    )
    parser.add_argument("--region", metavar="START:END", help="Character offsets of the region.")
    parser.add_argument("--lines", metavar="A:B", help="1-based inclusive line range of the region.")
    parser.add_argument("--match", metavar="EXPR", help="Guard expression for print/simple modes.")
    parser.add_argument("-F", "--field-separator", metavar="FS", help="Input field separator.")
    parser.add_argument("--tool", metavar="COMMAND", help="External tool command (default: awk).")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.awkit/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value)
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target, optional = _resolve_annotation(annotation)

    if target is str or target is Any:
        # Field separators and match expressions may be meaningful whitespace.
        return raw_value
    normalized = raw_value.strip()
    if optional and normalized.lower() in {"none", "null", ""}:
        return None
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    return normalized


def _resolve_annotation(annotation: Any) -> tuple[Any, bool]:
    if get_origin(annotation) is None:
        return annotation, False
    args = get_args(annotation)
    remaining = [arg for arg in args if arg is not type(None)]
    optional = len(remaining) != len(args)
    return (remaining[0] if remaining else Any), optional


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": asdict(settings), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("AWKIT_"))


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
