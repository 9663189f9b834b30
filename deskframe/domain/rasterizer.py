"""Convert colour images into packed 1-bit bitmaps.

The image is fitted into the target box preserving its aspect ratio
(letterboxed and centred, never stretched), sampled nearest-neighbour and
thresholded on integer-weighted luminance.
"""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

from deskframe.core.exceptions import DecodeError
from deskframe.domain.models import packed_row_bytes

logger = logging.getLogger(__name__)

# Pixels strictly brighter than this are lit.
LUMINANCE_THRESHOLD = 128

# 16.16 fixed-point Rec. 601 weights (sum to 65536).
_R_WEIGHT = 19595
_G_WEIGHT = 38470
_B_WEIGHT = 7471

DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    EOFError,
    ValueError,
    SyntaxError,
)


def luminance(r: int, g: int, b: int) -> int:
    """Integer luminance of an 8-bit RGB triple, in 0-255."""
    return (_R_WEIGHT * r + _G_WEIGHT * g + _B_WEIGHT * b + (1 << 15)) >> 16


def fit_dimensions(src_w: int, src_h: int, width: int, height: int) -> tuple[int, int]:
    """Largest (w, h) inside width x height with the source aspect ratio."""
    ratio_src = src_w / src_h
    ratio_dst = width / height
    if ratio_src > ratio_dst:
        return width, max(1, int(width / ratio_src))
    return max(1, int(height * ratio_src)), height


def decode_image(data: bytes) -> Image.Image:
    """Open and fully load an image from bytes.

    Raises:
        DecodeError: If the payload is empty, not a supported container, or corrupt
    """
    if not data:
        raise DecodeError("empty image payload")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except DECODE_ERRORS as exc:
        raise DecodeError(f"unsupported or corrupt image: {exc}") from exc
    if image.width <= 0 or image.height <= 0:
        raise DecodeError("image has no pixels")
    return image


def to_rgb(image: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any transparency onto black."""
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if not has_alpha:
        return image.convert("RGB")
    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
    return Image.alpha_composite(background, rgba).convert("RGB")


def rasterize(image: Image.Image, width: int = 128, height: int = 64) -> bytes:
    """Rasterize ``image`` into a packed bitmap of exactly ``ceil(width/8) * height`` bytes.

    Args:
        image: Decoded Pillow image (any mode)
        width: Target width in pixels
        height: Target height in pixels

    Returns:
        Packed bitmap bytes, MSB-first, 1 = lit

    Raises:
        DecodeError: If pixel data cannot be read
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid target size {width}x{height}")

    bytes_per_row = packed_row_bytes(width)
    out = bytearray(bytes_per_row * height)

    try:
        rgb = to_rgb(image)
        pixels = rgb.load()
    except DECODE_ERRORS as exc:
        raise DecodeError(f"unable to read image pixels: {exc}") from exc

    src_w, src_h = rgb.size
    target_w, target_h = fit_dimensions(src_w, src_h, width, height)
    offset_x = (width - target_w) // 2
    offset_y = (height - target_h) // 2

    for y in range(target_h):
        src_y = y * src_h // target_h
        row_base = (offset_y + y) * bytes_per_row
        for x in range(target_w):
            r, g, b = pixels[x * src_w // target_w, src_y]
            if luminance(r, g, b) > LUMINANCE_THRESHOLD:
                px = offset_x + x
                out[row_base + (px >> 3)] |= 0x80 >> (px & 7)

    return bytes(out)


def rasterize_bytes(data: bytes, width: int = 128, height: int = 64) -> bytes:
    """Decode and rasterize the first frame of an encoded image."""
    return rasterize(decode_image(data), width, height)
