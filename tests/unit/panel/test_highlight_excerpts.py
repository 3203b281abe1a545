"""Tests for source excerpts, sanitization, and Pygments colorizing."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from componentpreview.highlight import colorize_source, cursor_line_excerpt, read_text, sanitize_terminal_text


class HighlightTests(unittest.TestCase):
    def test_sanitize_escapes_controls_but_keeps_layout_whitespace(self) -> None:
        self.assertEqual(sanitize_terminal_text("a\x1b[2Jb\tc\n"), "a\\x1b[2Jb\tc\n")
        self.assertEqual(sanitize_terminal_text("plain"), "plain")

    def test_colorize_emits_ansi_and_keeps_line_count(self) -> None:
        rendered = colorize_source("const x = 1", Path("Home.js"))
        self.assertIn("\x1b[", rendered)
        self.assertFalse(rendered.endswith("\n"))

    def test_unknown_style_and_file_type_fall_back(self) -> None:
        rendered = colorize_source("hello", Path("notes.unknownext"), "no-such-style")
        self.assertIn("hello", rendered)

    def test_cursor_line_excerpt(self) -> None:
        self.assertEqual(cursor_line_excerpt("a\n\tb\nc", 3), (1, "    b"))
        self.assertEqual(cursor_line_excerpt("abc", 99), (0, "abc"))

    def test_long_lines_are_clipped_around_the_cursor(self) -> None:
        text = "a" * 200 + "X" + "b" * 199
        line_number, line = cursor_line_excerpt(text, 200, max_chars=160)
        self.assertEqual(line_number, 0)
        self.assertEqual(len(line), 160)
        self.assertIn("X", line)

    def test_read_text_falls_back_to_latin1(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "legacy.tsx"
            path.write_bytes(b"caf\xe9")
            self.assertEqual(read_text(path), "caf\xe9")


if __name__ == "__main__":
    unittest.main()
