"""Component-name extraction from document text at a cursor offset.

Finds the PascalCase identifier under the cursor and filters out built-in
globals and framework primitives that are capitalized but never components.
"""

from __future__ import annotations

import re

COMPONENT_WORD_RE = re.compile(r"(?<![A-Za-z0-9_$])[A-Z][A-Za-z0-9]*")
MIN_COMPONENT_NAME_LENGTH = 2

# Capitalized identifiers that are language/runtime/framework built-ins.
BUILTIN_UPPERCASE_NAMES = frozenset(
    {
        "Array",
        "ArrayBuffer",
        "Boolean",
        "DataView",
        "Date",
        "Error",
        "EvalError",
        "Float32Array",
        "Float64Array",
        "Function",
        "Generator",
        "GeneratorFunction",
        "Int8Array",
        "Int16Array",
        "Int32Array",
        "Infinity",
        "JSON",
        "Map",
        "Math",
        "NaN",
        "Number",
        "Object",
        "Promise",
        "Proxy",
        "RangeError",
        "ReferenceError",
        "Reflect",
        "RegExp",
        "Set",
        "SharedArrayBuffer",
        "String",
        "Symbol",
        "SyntaxError",
        "TypeError",
        "URIError",
        "Uint8Array",
        "Uint8ClampedArray",
        "Uint16Array",
        "Uint32Array",
        "WeakMap",
        "WeakSet",
        "React",
        "Component",
        "Fragment",
        "Suspense",
        "StrictMode",
        "Profiler",
        "Element",
        "HTMLElement",
        "SVGElement",
        "Event",
        "Document",
        "Window",
        "Node",
        "NodeList",
        "Console",
    }
)


def is_component_name(word: str) -> bool:
    """Return whether ``word`` is an acceptable component candidate."""
    if len(word) < MIN_COMPONENT_NAME_LENGTH:
        return False
    if word in BUILTIN_UPPERCASE_NAMES:
        return False
    return COMPONENT_WORD_RE.fullmatch(word) is not None


def _line_bounds(text: str, offset: int) -> tuple[int, int]:
    """Return ``(start, end)`` offsets of the line containing ``offset``."""
    line_start = text.rfind("\n", 0, offset) + 1
    line_end = text.find("\n", offset)
    if line_end < 0:
        line_end = len(text)
    return line_start, line_end


def word_span_at(text: str, offset: int) -> tuple[int, int] | None:
    """Return the PascalCase run touching ``offset`` as ``(start, end)``.

    Mirrors editor word-range semantics: a cursor sitting directly after the
    last character of a run still selects that run.
    """
    if not text or offset < 0 or offset > len(text):
        return None
    line_start, line_end = _line_bounds(text, offset)
    for match in COMPONENT_WORD_RE.finditer(text, line_start, line_end):
        if match.start() > offset:
            break
        if match.start() <= offset <= match.end():
            return match.start(), match.end()
    return None


def extract_component_name(text: str, offset: int) -> str | None:
    """Return the component name under ``offset`` or ``None``.

    Pure function of its inputs: no filesystem access happens here, so
    denylisted or too-short words never trigger any probing downstream.
    """
    span = word_span_at(text, offset)
    if span is None:
        return None
    word = text[span[0] : span[1]]
    if not is_component_name(word):
        return None
    return word


def offset_for_position(text: str, line: int, column: int) -> int:
    """Convert a zero-based ``(line, column)`` pair into a text offset.

    Lines past the end clamp to the end of text; columns clamp to the line.
    """
    if line < 0 or column < 0:
        raise ValueError("line and column must be non-negative")
    line_start = 0
    for _ in range(line):
        next_newline = text.find("\n", line_start)
        if next_newline < 0:
            return len(text)
        line_start = next_newline + 1
    line_end = text.find("\n", line_start)
    if line_end < 0:
        line_end = len(text)
    return min(line_start + column, line_end)
