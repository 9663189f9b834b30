"""Turns frame elements into full-screen bitmaps for the panel.

The renderer never raises on element data: every primitive is clipped to
the canvas, and unknown element variants draw nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from deskframe.domain.canvas import DISPLAY_HEIGHT, DISPLAY_WIDTH, MonoBitmap
from deskframe.domain.font import GLYPH_ADVANCE, GLYPH_HEIGHT

logger = logging.getLogger(__name__)

# Reverses the bit order of one byte
_BIT_REVERSE = bytes(int(f"{b:08b}"[::-1], 2) for b in range(256))


def rotate_180(data: bytes, width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT) -> bytes:
    """Rotate a packed 1-bit bitmap by 180 degrees."""
    if width % 8 == 0:
        return bytes(data[::-1]).translate(_BIT_REVERSE)

    source = MonoBitmap(width, height, data)
    rotated = MonoBitmap(width, height)
    for y in range(height):
        for x in range(width):
            if source.get_pixel(x, y):
                rotated.set_pixel(width - 1 - x, height - 1 - y)
    return rotated.to_bytes()


class FrameRenderer:
    """Renders element lists onto a persistent canvas.

    A frame with ``clear`` set starts from a blank canvas; otherwise it is
    drawn over whatever the previous frame left behind.
    """

    def __init__(self, width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT) -> None:
        self.width = width
        self.height = height
        self._canvas = MonoBitmap(width, height)

    def render(self, elements: Iterable[object], clear: bool = True) -> bytes:
        """Draw ``elements`` and return the resulting canvas bytes."""
        if clear:
            self._canvas.clear()
        self._canvas.draw_elements(elements)
        return self._canvas.to_bytes()

    def render_standalone(self, elements: Iterable[object]) -> bytes:
        """Render onto a fresh canvas without touching the persistent one."""
        canvas = MonoBitmap(self.width, self.height)
        canvas.draw_elements(elements)
        return canvas.to_bytes()

    def overlay(self, bitmap: bytes, clear: bool = True) -> bytes:
        """Show a pre-rendered bitmap, OR-ing it over the canvas unless ``clear``."""
        if clear:
            self._canvas = MonoBitmap(self.width, self.height, bitmap)
        else:
            self._canvas.blit(0, 0, self.width, self.height, bitmap)
        return self._canvas.to_bytes()

    def render_message(self, *lines: str) -> bytes:
        """Render short centred status text, one line per argument."""
        self._canvas.clear()
        line_height = GLYPH_HEIGHT + 3
        top = max(0, (self.height - line_height * len(lines)) // 2)
        max_chars = self.width // GLYPH_ADVANCE
        for i, line in enumerate(lines):
            text = line[:max_chars]
            x = max(0, (self.width - len(text) * GLYPH_ADVANCE) // 2)
            self._canvas.draw_text(x, top + i * line_height, text)
        return self._canvas.to_bytes()
