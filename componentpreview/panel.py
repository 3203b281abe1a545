"""Terminal side panel for component previews.

Renders the three panel states (empty, image, not found). PNG previews are
drawn inline with the kitty graphics protocol when the terminal supports it;
everything else gets a text placeholder naming the image file and its size.
"""

from __future__ import annotations

import base64
import os
import struct
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import TextIO

from .highlight import DEFAULT_STYLE, colorize_source, cursor_line_excerpt, sanitize_terminal_text
from .locator import IMAGE_EXTENSIONS, expected_preview_names

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8"
IMAGE_HEADER_PROBE_BYTES = 64 * 1024
DEFAULT_IMAGE_WIDTH_CELLS = 60
DEFAULT_IMAGE_HEIGHT_CELLS = 20

_BOLD = "\033[1m"
_DIM = "\033[2m"
_RESET = "\033[0m"


def supports_kitty_graphics(environ: Mapping[str, str] | None = None) -> bool:
    """Return whether environment appears to support kitty graphics protocol."""
    env = os.environ if environ is None else environ
    if env.get("TERM", "") == "xterm-kitty":
        return True
    return bool(env.get("KITTY_WINDOW_ID"))


def _jpeg_dimensions(data: bytes) -> tuple[int, int] | None:
    idx = 2
    while idx + 9 < len(data):
        if data[idx] != 0xFF:
            idx += 1
            continue
        marker = data[idx + 1]
        # SOF0..SOF15 minus DHT (C4), JPG (C8), DAC (CC).
        if 0xC0 <= marker <= 0xCF and marker not in (0xC4, 0xC8, 0xCC):
            height, width = struct.unpack(">HH", data[idx + 5 : idx + 9])
            return width, height
        segment_length = struct.unpack(">H", data[idx + 2 : idx + 4])[0]
        idx += 2 + segment_length
    return None


def image_info(image_path: Path) -> tuple[str | None, tuple[int, int] | None]:
    """Return ``(format, (width, height))`` sniffed from the file header.

    Unreadable or unrecognized files report ``(None, None)``.
    """
    try:
        with image_path.open("rb") as handle:
            data = handle.read(IMAGE_HEADER_PROBE_BYTES)
    except OSError:
        return None, None
    if data.startswith(PNG_SIGNATURE) and len(data) >= 24:
        width, height = struct.unpack(">II", data[16:24])
        return "png", (width, height)
    if data.startswith(JPEG_SIGNATURE):
        return "jpeg", _jpeg_dimensions(data)
    return None, None


def kitty_draw_png_payload(image_path: Path, width_cells: int, height_cells: int) -> str:
    """Build the kitty escape sequence that draws a PNG file at the cursor."""
    encoded_path = base64.b64encode(str(image_path).encode("utf-8")).decode("ascii")
    return (
        f"\x1b_Ga=T,t=f,f=100,q=2,c={max(1, width_cells)},r={max(1, height_cells)};{encoded_path}\x1b\\"
    )


KITTY_CLEAR_IMAGES = "\x1b_Ga=d,d=A,q=2;\x1b\\"


class TerminalPanel:
    """Write panel states to a terminal stream.

    Args:
        stream: Output text stream; defaults to ``sys.stdout``.
        no_color: Disable ANSI styling and syntax colors.
        kitty: Force kitty image drawing on/off; ``None`` autodetects.
        style: Pygments style for source excerpts.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        no_color: bool = False,
        kitty: bool | None = None,
        style: str = DEFAULT_STYLE,
        image_extensions: tuple[str, ...] = IMAGE_EXTENSIONS,
        width_cells: int = DEFAULT_IMAGE_WIDTH_CELLS,
        height_cells: int = DEFAULT_IMAGE_HEIGHT_CELLS,
    ) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.no_color = no_color
        self.kitty = supports_kitty_graphics() if kitty is None else kitty
        self.style = style
        self.image_extensions = image_extensions
        self.width_cells = width_cells
        self.height_cells = height_cells
        self._image_on_screen = False
        self.state = "empty"

    def _styled(self, text: str, code: str) -> str:
        if self.no_color:
            return text
        return f"{code}{text}{_RESET}"

    def _write(self, *lines: str) -> None:
        self.stream.write("".join(line + "\n" for line in lines))
        self.stream.flush()

    def _clear_image(self) -> None:
        if self._image_on_screen:
            self.stream.write(KITTY_CLEAR_IMAGES)
            self._image_on_screen = False

    def render_empty(self) -> None:
        self._clear_image()
        self.state = "empty"
        self._write(
            self._styled("Component Preview", _BOLD),
            "Place the cursor on a PascalCase component name, or pick a component file,",
            "to show its preview image here.",
        )

    def render_image(self, component_name: str, image_path: Path) -> None:
        self._clear_image()
        self.state = "image"
        image_format, dimensions = image_info(image_path)
        size_label = f" {dimensions[0]}x{dimensions[1]}" if dimensions is not None else ""
        self._write(
            self._styled(sanitize_terminal_text(component_name), _BOLD),
            self._styled(sanitize_terminal_text(str(image_path)), _DIM),
        )
        if self.kitty and image_format == "png":
            self.stream.write(kitty_draw_png_payload(image_path, self.width_cells, self.height_cells))
            self._image_on_screen = True
            self._write("")
            return
        label = (image_format or image_path.suffix.lstrip(".") or "image").upper()
        self._write(f"<{label} image{size_label}: {sanitize_terminal_text(image_path.name)}>")

    def render_not_found(self, component_name: str) -> None:
        self._clear_image()
        self.state = "not_found"
        name = sanitize_terminal_text(component_name)
        convention_a, convention_b = expected_preview_names(name, self.image_extensions)
        self._write(
            self._styled(name, _BOLD),
            "No preview image found. Expected one of:",
            f"  {convention_a}",
            f"  {convention_b}",
        )

    def render_context(self, document_path: Path, text: str, offset: int) -> None:
        """Show the document line under the cursor, syntax-colored unless disabled."""
        line_number, line = cursor_line_excerpt(text, offset)
        line = sanitize_terminal_text(line)
        if not self.no_color:
            line = colorize_source(line, document_path, self.style)
        location = f"{document_path.name}:{line_number + 1}"
        self._write(f"{self._styled(location, _DIM)}  {line}")
