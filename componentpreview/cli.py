"""Command-line front door for componentpreview.

Parses CLI options, builds a preview session for the workspace roots, and
dispatches to one of the commands:

- ``show``: resolve the component under a cursor position once
- ``file``: show the preview for a component file
- ``list``: print component files that have a preview image
- ``follow``: read cursor/selection events as JSON lines from stdin
- ``init-config``: write the default config file
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TextIO

from . import config
from .config import Settings, load_settings, save_settings
from .highlight import read_text
from .logging_setup import setup_logging
from .names import offset_for_position
from .orchestrator import NOOP, Noop, PresentationCommand
from .panel import TerminalPanel
from .session import PreviewSession

logger = logging.getLogger(__name__)


def _nonnegative_int(value: str) -> int:
    """argparse type for non-negative integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must be >= 0")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpreview",
        description="Show the preview image of the UI component under the cursor.",
    )
    parser.add_argument(
        "--root",
        action="append",
        default=None,
        metavar="DIR",
        help="Workspace root (repeatable). Defaults to the current directory.",
    )
    parser.add_argument("--style", default=None, help="Pygments style name for source excerpts.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output.")
    parser.add_argument(
        "--kitty",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Force kitty inline images on or off (default: autodetect).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log resolution steps to stderr.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Resolve the component at a cursor position.")
    show.add_argument("document", help="Document containing the cursor.")
    position = show.add_mutually_exclusive_group(required=True)
    position.add_argument("--offset", type=_nonnegative_int, help="Zero-based character offset.")
    position.add_argument("--line", type=_nonnegative_int, help="Zero-based line number.")
    show.add_argument("--column", type=_nonnegative_int, default=0, help="Zero-based column (with --line).")

    file_cmd = subparsers.add_parser("file", help="Show the preview for a component file.")
    file_cmd.add_argument("path", help="Component source file.")

    subparsers.add_parser("list", help="List component files that have a preview image.")
    subparsers.add_parser("follow", help="Read JSON cursor/selection events from stdin.")
    subparsers.add_parser("init-config", help="Write the default config file.")
    return parser


def _workspace_roots(raw_roots: list[str] | None) -> list[Path]:
    if not raw_roots:
        return [Path.cwd().resolve()]
    roots: list[Path] = []
    for raw in raw_roots:
        root = Path(raw).expanduser()
        if not root.is_dir():
            raise SystemExit(f"Workspace root not found: {root}")
        roots.append(root.resolve())
    return roots


def _read_document(raw_path: str) -> tuple[Path, str]:
    path = Path(raw_path).expanduser()
    if not path.is_file():
        raise SystemExit(f"Path not found: {path}")
    return path.resolve(), read_text(path)


async def run_show(session: PreviewSession, panel: TerminalPanel, document: Path, text: str, offset: int) -> PresentationCommand:
    panel.render_context(document, text, offset)
    command = await session.resolve_cursor(document, text, offset)
    if isinstance(command, Noop):
        panel.stream.write("No component name at cursor.\n")
    return command


async def run_list(session: PreviewSession, stream: TextIO) -> int:
    entries = await session.listing.refresh()
    for entry in entries:
        stream.write(f"{entry.label}\t{entry.file_path}\t{entry.preview_path}\n")
    return len(entries)


def _event_offset(event: dict[str, object], text: str) -> int | None:
    offset = event.get("offset")
    if isinstance(offset, int) and not isinstance(offset, bool) and offset >= 0:
        return offset
    line = event.get("line")
    column = event.get("column", 0)
    if isinstance(line, int) and isinstance(column, int) and line >= 0 and column >= 0:
        return offset_for_position(text, line, column)
    return None


def handle_follow_event(session: PreviewSession, raw_line: str) -> bool:
    """Dispatch one JSON event line; returns whether it was understood.

    ``{"document": PATH, "offset": N}`` or ``{"document": PATH, "line": L,
    "column": C}`` move the cursor (optional ``"text"`` overrides the file
    contents); ``{"file": PATH}`` selects a component file.
    """
    try:
        event = json.loads(raw_line)
    except json.JSONDecodeError:
        logger.warning("ignoring malformed event: %r", raw_line)
        return False
    if not isinstance(event, dict):
        return False

    file_path = event.get("file")
    if isinstance(file_path, str) and file_path:
        session.on_file_selected(Path(file_path))
        return True

    document = event.get("document")
    if not isinstance(document, str) or not document:
        return False
    document_path = Path(document).expanduser().resolve()
    text = event.get("text")
    if not isinstance(text, str):
        try:
            text = read_text(document_path)
        except OSError as exc:
            logger.warning("cannot read %s: %s", document_path, exc)
            return False
    offset = _event_offset(event, text)
    if offset is None:
        return False
    return session.on_cursor(document_path, text, offset)


async def run_follow(session: PreviewSession, stdin: TextIO) -> None:
    session.start()
    try:
        while True:
            raw_line = await asyncio.to_thread(stdin.readline)
            if not raw_line:
                break
            if raw_line.strip():
                handle_follow_event(session, raw_line)
        # Resolve the last debounced cursor event before shutting down.
        session.debouncer.flush()
        await session.settle()
    finally:
        await session.close()


async def _run_command(
    args: argparse.Namespace,
    settings: Settings,
    roots: list[Path],
    document: tuple[Path, str] | None = None,
) -> PresentationCommand | int | None:
    panel = TerminalPanel(
        no_color=args.no_color,
        kitty=args.kitty,
        style=args.style or settings.style,
        image_extensions=settings.image_extensions,
    )
    session = PreviewSession(roots, panel, settings)
    if args.command == "follow":
        await run_follow(session, sys.stdin)
        return None

    try:
        if args.command == "show" and document is not None:
            document_path, text = document
            if args.offset is not None:
                offset = min(args.offset, len(text))
            else:
                offset = offset_for_position(text, args.line, args.column)
            return await run_show(session, panel, document_path, text, offset)
        if args.command == "file":
            return await session.show_file(Path(args.path).expanduser())
        if args.command == "list":
            return await run_list(session, panel.stream)
    finally:
        await session.close()
    return NOOP


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run the selected command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    if args.command == "init-config":
        if not save_settings(Settings()):
            raise SystemExit(f"Could not write config: {config.CONFIG_PATH}")
        sys.stdout.write(f"{config.CONFIG_PATH}\n")
        return

    settings = load_settings()
    roots = _workspace_roots(args.root)
    document: tuple[Path, str] | None = None
    if args.command == "show":
        document = _read_document(args.document)
    elif args.command == "file" and not Path(args.path).expanduser().is_file():
        raise SystemExit(f"Path not found: {args.path}")
    asyncio.run(_run_command(args, settings, roots, document))


if __name__ == "__main__":
    main()
