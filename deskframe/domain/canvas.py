"""1-bit packed canvas used to flatten frames and to render them on devices.

Pixel layout matches the wire bitmap format: row-major, ``ceil(width/8)``
bytes per row, bit 7 of each byte is the leftmost pixel, 1 = lit. Every
drawing operation clips to the canvas; out-of-range input is never an error.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from deskframe.domain.font import GLYPH_ADVANCE, GLYPH_HEIGHT, GLYPH_WIDTH, glyph
from deskframe.domain.models import (
    BitmapElement,
    Frame,
    LineElement,
    TextElement,
    packed_row_bytes,
)

DISPLAY_WIDTH = 128
DISPLAY_HEIGHT = 64
FULL_FRAME_BYTES = packed_row_bytes(DISPLAY_WIDTH) * DISPLAY_HEIGHT


class MonoBitmap:
    """Mutable packed 1-bit canvas."""

    __slots__ = ("width", "height", "bytes_per_row", "_data")

    def __init__(
        self,
        width: int = DISPLAY_WIDTH,
        height: int = DISPLAY_HEIGHT,
        data: bytes | bytearray | None = None,
    ) -> None:
        self.width = width
        self.height = height
        self.bytes_per_row = packed_row_bytes(width)
        size = self.bytes_per_row * height
        if data is None:
            self._data = bytearray(size)
        else:
            if len(data) != size:
                raise ValueError(f"expected {size} bytes for {width}x{height}, got {len(data)}")
            self._data = bytearray(data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MonoBitmap):
            return NotImplemented
        return (self.width, self.height, self._data) == (other.width, other.height, other._data)

    def get_pixel(self, x: int, y: int) -> bool:
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return False
        return bool(self._data[y * self.bytes_per_row + (x >> 3)] & (0x80 >> (x & 7)))

    def set_pixel(self, x: int, y: int, on: bool = True) -> None:
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return
        index = y * self.bytes_per_row + (x >> 3)
        mask = 0x80 >> (x & 7)
        if on:
            self._data[index] |= mask
        else:
            self._data[index] &= ~mask & 0xFF

    def fill_rect(self, x: int, y: int, width: int, height: int) -> None:
        """Light a rectangle, clamped to the canvas. Empty intersections draw nothing."""
        x0, y0 = max(x, 0), max(y, 0)
        x1, y1 = min(x + width, self.width), min(y + height, self.height)
        if x0 >= x1 or y0 >= y1:
            return
        for py in range(y0, y1):
            for px in range(x0, x1):
                self.set_pixel(px, py)

    def draw_text(self, x: int, y: int, text: str, size: int = 1) -> None:
        """Draw ``text`` with the 5x7 font scaled by ``size``."""
        size = max(1, size)
        current_x = x
        for char in text:
            columns = glyph(char)
            for col in range(GLYPH_WIDTH):
                bits = columns[col]
                if not bits:
                    continue
                for row in range(GLYPH_HEIGHT):
                    if bits & (1 << row):
                        self.fill_rect(current_x + col * size, y + row * size, size, size)
            current_x += GLYPH_ADVANCE * size
            if current_x >= self.width:
                break

    def blit(self, x: int, y: int, width: int, height: int, data: Sequence[int]) -> None:
        """Copy lit pixels of a packed bitmap onto the canvas at (x, y).

        Only the part overlapping the canvas is visited; bytes missing from a
        short ``data`` read as unlit.
        """
        src_bpr = packed_row_bytes(width)
        col_start, col_end = max(0, -x), min(width, self.width - x)
        row_start, row_end = max(0, -y), min(height, self.height - y)
        if col_start >= col_end or row_start >= row_end:
            return
        available = len(data)
        for row in range(row_start, row_end):
            base = row * src_bpr
            for col in range(col_start, col_end):
                index = base + (col >> 3)
                if index < available and data[index] & (0x80 >> (col & 7)):
                    self.set_pixel(x + col, y + row)

    def draw_element(self, element: object) -> None:
        """Draw one element; unknown element variants are skipped."""
        if isinstance(element, TextElement):
            self.draw_text(element.x, element.y, element.value, element.size)
        elif isinstance(element, LineElement):
            self.fill_rect(element.x, element.y, element.width, element.height)
        elif isinstance(element, BitmapElement):
            self.blit(element.x, element.y, element.width, element.height, element.bitmap)

    def draw_elements(self, elements: Iterable[object]) -> None:
        for element in elements:
            self.draw_element(element)

    def invert(self) -> None:
        for i, b in enumerate(self._data):
            self._data[i] = ~b & 0xFF

    def clear(self) -> None:
        self._data[:] = bytes(len(self._data))

    def lit_count(self) -> int:
        return sum(bin(b).count("1") for b in self._data)

    def to_bytes(self) -> bytes:
        return bytes(self._data)

    def to_element(self) -> BitmapElement:
        """Full-canvas bitmap element at the origin."""
        return BitmapElement(
            x=0, y=0, width=self.width, height=self.height, bitmap=tuple(self._data)
        )


def render_frame(frame: Frame, width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT) -> MonoBitmap:
    """Render all elements of ``frame`` onto a blank canvas."""
    canvas = MonoBitmap(width, height)
    canvas.draw_elements(frame.elements)
    return canvas


def flatten_frame(frame: Frame, invert: bool = False) -> Frame:
    """Collapse a frame's elements into one full-screen bitmap element.

    Devices in local playback only store raw bitmaps, so sequences are
    flattened before they are published.
    """
    canvas = render_frame(frame)
    if invert:
        canvas.invert()
    return Frame(
        version=frame.version,
        duration_ms=frame.duration_ms,
        clear=frame.clear,
        elements=(canvas.to_element(),),
    )
