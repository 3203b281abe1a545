"""Source loading, sanitization, and syntax highlighting for panel excerpts.

Pygments colorizes the few source lines the panel shows around the cursor.
Terminal control bytes are neutralized before anything reaches the screen.
"""

from __future__ import annotations

import re
from pathlib import Path

from pygments import highlight as pygments_highlight_text
from pygments.formatters import TerminalFormatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

DEFAULT_STYLE = "monokai"
EXCERPT_MAX_CHARS = 160

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_FORMATTERS: dict[str, TerminalFormatter] = {}
_VALID_STYLES: set[str] = set()
_INVALID_STYLES: set[str] = set()


def read_text(path: Path) -> str:
    """Read text using tolerant encoding fallback order.

    Attempts UTF-8, UTF-8 with BOM, then latin-1; as a final fallback decodes
    raw bytes with UTF-8 replacement semantics.
    """
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


def _normalize_style(style: str) -> str:
    """Validate/canonicalize requested style name with cache-backed checks."""
    if style in _VALID_STYLES:
        return style
    if style in _INVALID_STYLES:
        return DEFAULT_STYLE
    try:
        get_style_by_name(style)
    except ClassNotFound:
        _INVALID_STYLES.add(style)
        return DEFAULT_STYLE
    _VALID_STYLES.add(style)
    return style


def _formatter_for_style(style: str) -> TerminalFormatter:
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = TerminalFormatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def colorize_source(source: str, path: Path, style: str = DEFAULT_STYLE) -> str:
    """Colorize ``source`` with a lexer picked from ``path``'s filename.

    Unknown file types use the plain-text lexer. The trailing newline Pygments
    appends is removed so excerpts keep their original line count.
    """
    formatter = _formatter_for_style(_normalize_style(style))
    try:
        lexer = get_lexer_for_filename(path.name, source)
    except ClassNotFound:
        lexer = TextLexer()
    rendered = pygments_highlight_text(source, lexer, formatter)
    if not source.endswith("\n") and rendered.endswith("\n"):
        rendered = rendered[:-1]
    return rendered


def cursor_line_excerpt(text: str, offset: int, max_chars: int = EXCERPT_MAX_CHARS) -> tuple[int, str]:
    """Return ``(zero_based_line, line_text)`` for the line containing ``offset``.

    Long lines are clipped around the cursor column.
    """
    offset = max(0, min(offset, len(text)))
    line_number = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    line_end = text.find("\n", offset)
    if line_end < 0:
        line_end = len(text)
    line = text[line_start:line_end].rstrip("\r").replace("\t", "    ")
    if len(line) <= max_chars:
        return line_number, line
    column = offset - line_start
    start = max(0, min(column - max_chars // 2, len(line) - max_chars))
    return line_number, line[start : start + max_chars]
