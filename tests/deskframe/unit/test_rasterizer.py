"""Unit tests for deskframe.domain.rasterizer."""

from collections.abc import Callable

import pytest
from PIL import Image

from deskframe.core.exceptions import DecodeError
from deskframe.domain.canvas import MonoBitmap
from deskframe.domain.rasterizer import (
    decode_image,
    fit_dimensions,
    luminance,
    rasterize,
    rasterize_bytes,
)

pytestmark = pytest.mark.unit


class TestLuminance:
    """Tests for the integer luminance weighting."""

    def test_luminance_when_extremes_then_full_range(self) -> None:
        assert luminance(0, 0, 0) == 0
        assert luminance(255, 255, 255) == 255

    def test_luminance_when_green_then_brighter_than_blue(self) -> None:
        assert luminance(0, 255, 0) > luminance(255, 0, 0) > luminance(0, 0, 255)

    def test_rasterize_when_mid_gray_then_threshold_is_exclusive(self) -> None:
        at_threshold = rasterize(Image.new("RGB", (8, 1), (128, 128, 128)), 8, 1)
        above = rasterize(Image.new("RGB", (8, 1), (129, 129, 129)), 8, 1)

        assert at_threshold == b"\x00"
        assert above == b"\xff"


class TestFitDimensions:
    """Tests for aspect-preserving fit."""

    def test_fit_dimensions_when_same_ratio_then_fills_target(self) -> None:
        assert fit_dimensions(32, 16, 128, 64) == (128, 64)

    def test_fit_dimensions_when_taller_then_width_shrinks(self) -> None:
        assert fit_dimensions(64, 128, 128, 64) == (32, 64)

    def test_fit_dimensions_when_wider_then_height_shrinks(self) -> None:
        assert fit_dimensions(256, 32, 128, 64) == (128, 16)


class TestRasterize:
    """Tests for rasterize()."""

    def test_rasterize_when_white_then_every_bit_lit(self) -> None:
        data = rasterize(Image.new("RGB", (128, 64), (255, 255, 255)))

        assert len(data) == 1024
        assert data == b"\xff" * 1024

    def test_rasterize_when_black_then_no_bit_lit(self) -> None:
        assert rasterize(Image.new("RGB", (300, 200), (0, 0, 0))) == bytes(1024)

    def test_rasterize_when_width_not_byte_aligned_then_rows_padded(self) -> None:
        data = rasterize(Image.new("RGB", (10, 5), (255, 255, 255)), 10, 5)

        assert len(data) == 2 * 5
        assert data == b"\xff\xc0" * 5

    def test_rasterize_when_tall_source_then_centered_horizontally(self) -> None:
        canvas = MonoBitmap(128, 64, rasterize(Image.new("RGB", (64, 128), (255, 255, 255))))

        assert not canvas.get_pixel(47, 10)
        assert canvas.get_pixel(48, 0)
        assert canvas.get_pixel(79, 63)
        assert not canvas.get_pixel(80, 10)
        assert canvas.lit_count() == 32 * 64

    def test_rasterize_when_wide_source_then_centered_vertically(self) -> None:
        canvas = MonoBitmap(128, 64, rasterize(Image.new("RGB", (256, 32), (255, 255, 255))))

        assert not canvas.get_pixel(0, 23)
        assert canvas.get_pixel(0, 24)
        assert canvas.get_pixel(127, 39)
        assert not canvas.get_pixel(0, 40)

    def test_rasterize_when_transparent_then_treated_as_black(self) -> None:
        image = Image.new("RGBA", (128, 64), (255, 255, 255, 0))

        assert rasterize(image) == bytes(1024)

    def test_rasterize_when_palette_image_then_converted(self) -> None:
        image = Image.new("RGB", (128, 64), (255, 255, 255)).convert("P")

        assert rasterize(image) == b"\xff" * 1024

    def test_rasterize_when_tiny_source_then_output_length_fixed(self) -> None:
        assert len(rasterize(Image.new("RGB", (1, 1), (255, 255, 255)))) == 1024

    def test_rasterize_when_invalid_target_then_raises(self) -> None:
        with pytest.raises(ValueError):
            rasterize(Image.new("RGB", (4, 4)), 0, 64)


class TestDecode:
    """Tests for decoding uploaded bytes."""

    def test_decode_image_when_empty_then_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            decode_image(b"")

    def test_decode_image_when_garbage_then_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            decode_image(b"definitely not an image")

    def test_decode_image_when_truncated_png_then_decode_error(
        self, image_factory: Callable[..., bytes]
    ) -> None:
        data = image_factory(size=(200, 200), color=(10, 200, 30))

        with pytest.raises(DecodeError):
            decode_image(data[: len(data) // 2])

    def test_rasterize_bytes_when_jpeg_then_packed_bitmap(
        self, image_factory: Callable[..., bytes]
    ) -> None:
        data = rasterize_bytes(image_factory(color=(255, 255, 255), fmt="JPEG"))

        assert len(data) == 1024
        assert MonoBitmap(128, 64, data).lit_count() > 1000
