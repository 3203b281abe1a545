"""Tests for terminal panel rendering and image header sniffing."""

from __future__ import annotations

import base64
import io
import struct
import tempfile
import unittest
from pathlib import Path

from componentpreview.panel import (
    KITTY_CLEAR_IMAGES,
    PNG_SIGNATURE,
    TerminalPanel,
    image_info,
    supports_kitty_graphics,
)


def _png_bytes(width: int, height: int) -> bytes:
    return PNG_SIGNATURE + struct.pack(">I", 13) + b"IHDR" + struct.pack(">II", width, height) + b"\x08\x06\x00\x00\x00"


def _jpeg_bytes(width: int, height: int) -> bytes:
    app0 = b"\xff\xe0" + struct.pack(">H", 16) + b"\x00" * 14
    sof0 = b"\xff\xc0" + struct.pack(">HBHH", 17, 8, height, width)
    return b"\xff\xd8" + app0 + sof0 + b"\x00" * 12


class ImageInfoTests(unittest.TestCase):
    def test_reads_png_and_jpeg_dimensions(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            png = Path(tmp) / "Hero.preview.png"
            png.write_bytes(_png_bytes(320, 200))
            jpeg = Path(tmp) / "Hero.jpg"
            jpeg.write_bytes(_jpeg_bytes(64, 48))
            garbage = Path(tmp) / "bad.png"
            garbage.write_bytes(b"nope")

            self.assertEqual(image_info(png), ("png", (320, 200)))
            self.assertEqual(image_info(jpeg), ("jpeg", (64, 48)))
            self.assertEqual(image_info(garbage), (None, None))
            self.assertEqual(image_info(Path(tmp) / "missing.png"), (None, None))

    def test_kitty_detection_from_environment(self) -> None:
        self.assertTrue(supports_kitty_graphics({"TERM": "xterm-kitty"}))
        self.assertTrue(supports_kitty_graphics({"KITTY_WINDOW_ID": "3"}))
        self.assertFalse(supports_kitty_graphics({"TERM": "xterm-256color"}))


class TerminalPanelTests(unittest.TestCase):
    def test_not_found_lists_both_conventions(self) -> None:
        stream = io.StringIO()
        panel = TerminalPanel(stream, no_color=True, kitty=False)

        panel.render_not_found("Hero")

        output = stream.getvalue()
        self.assertEqual(panel.state, "not_found")
        self.assertIn("Hero.preview.{png|jpg|jpeg}", output)
        self.assertIn("__previews__/Hero.{png|jpg|jpeg}", output)

    def test_image_placeholder_without_kitty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            image = Path(tmp) / "Hero.preview.png"
            image.write_bytes(_png_bytes(320, 200))
            stream = io.StringIO()
            panel = TerminalPanel(stream, no_color=True, kitty=False)

            panel.render_image("Hero", image)

            self.assertEqual(panel.state, "image")
            self.assertIn("<PNG image 320x200: Hero.preview.png>", stream.getvalue())

    def test_kitty_draws_png_and_clears_it_on_next_state(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            image = Path(tmp) / "Hero.preview.png"
            image.write_bytes(_png_bytes(10, 10))
            stream = io.StringIO()
            panel = TerminalPanel(stream, no_color=True, kitty=True)

            panel.render_image("Hero", image)
            encoded = base64.b64encode(str(image).encode("utf-8")).decode("ascii")
            self.assertIn("\x1b_Ga=T", stream.getvalue())
            self.assertIn(encoded, stream.getvalue())
            self.assertNotIn(KITTY_CLEAR_IMAGES, stream.getvalue())

            panel.render_empty()
            self.assertIn(KITTY_CLEAR_IMAGES, stream.getvalue())
            self.assertEqual(panel.state, "empty")

    def test_jpeg_is_never_sent_through_kitty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            image = Path(tmp) / "Hero.jpg"
            image.write_bytes(_jpeg_bytes(64, 48))
            stream = io.StringIO()
            panel = TerminalPanel(stream, no_color=True, kitty=True)

            panel.render_image("Hero", image)

            self.assertNotIn("\x1b_G", stream.getvalue())
            self.assertIn("<JPEG image 64x48: Hero.jpg>", stream.getvalue())

    def test_control_bytes_in_names_are_escaped(self) -> None:
        stream = io.StringIO()
        panel = TerminalPanel(stream, no_color=True, kitty=False)
        panel.render_not_found("Hero\x07")
        self.assertNotIn("\x07", stream.getvalue())
        self.assertIn("Hero\\x07", stream.getvalue())

    def test_context_line_shows_location_and_source(self) -> None:
        stream = io.StringIO()
        panel = TerminalPanel(stream, no_color=True, kitty=False)
        panel.render_context(Path("/ws/src/Home.tsx"), "import x\n<Hero />\n", 11)
        self.assertEqual(stream.getvalue(), "Home.tsx:2  <Hero />\n")


if __name__ == "__main__":
    unittest.main()
