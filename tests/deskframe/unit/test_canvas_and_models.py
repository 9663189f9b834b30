"""Unit tests for the packed canvas, the 5x7 font and the frame models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from deskframe.domain.canvas import MonoBitmap, flatten_frame, render_frame
from deskframe.domain.font import GLYPHS, centered_x, glyph, text_width
from deskframe.domain.models import (
    BitmapElement,
    DeviceSettings,
    DrawElement,
    Frame,
    LineElement,
    SettingsUpdate,
    TextElement,
    UnknownElement,
)

pytestmark = pytest.mark.unit

element_adapter = TypeAdapter(DrawElement)


class TestMonoBitmapClipping:
    """Drawing never raises and never writes outside the canvas."""

    def test_fill_rect_when_partially_off_left_edge_then_clamped(self) -> None:
        canvas = MonoBitmap(128, 64)

        canvas.fill_rect(-5, 0, 20, 1)

        assert [x for x in range(128) if canvas.get_pixel(x, 0)] == list(range(15))

    def test_fill_rect_when_fully_off_canvas_then_nothing_drawn(self) -> None:
        canvas = MonoBitmap(128, 64)

        canvas.fill_rect(200, 200, 10, 10)
        canvas.fill_rect(-50, -50, 10, 10)
        canvas.fill_rect(10, 10, 0, 5)

        assert canvas.lit_count() == 0

    def test_blit_when_overhanging_bottom_right_then_clipped(self) -> None:
        canvas = MonoBitmap(128, 64)

        canvas.blit(120, 60, 16, 8, [0xFF] * 16)

        assert canvas.lit_count() == 8 * 4

    def test_blit_when_data_short_then_missing_bytes_unlit(self) -> None:
        canvas = MonoBitmap(16, 2)

        canvas.blit(0, 0, 16, 2, [0xFF])

        assert canvas.lit_count() == 8

    def test_draw_text_when_past_right_edge_then_stops(self) -> None:
        canvas = MonoBitmap(128, 64)

        canvas.draw_text(120, 0, "WWWWWWWW", size=3)

        assert canvas.lit_count() > 0

    def test_set_pixel_when_out_of_range_then_ignored(self) -> None:
        canvas = MonoBitmap(8, 8)

        canvas.set_pixel(-1, 0)
        canvas.set_pixel(8, 8)

        assert canvas.to_bytes() == bytes(8)

    def test_draw_element_when_unknown_then_no_op(self) -> None:
        canvas = MonoBitmap()

        canvas.draw_element(UnknownElement(type="sparkle"))

        assert canvas.lit_count() == 0

    def test_init_when_data_wrong_size_then_raises(self) -> None:
        with pytest.raises(ValueError):
            MonoBitmap(128, 64, b"\x00" * 10)

    def test_invert_when_blank_then_all_lit(self) -> None:
        canvas = MonoBitmap(16, 4)

        canvas.invert()

        assert canvas.lit_count() == 64


class TestFlatten:
    """Tests for collapsing frames into one bitmap element."""

    def test_flatten_frame_when_elements_then_same_pixels(self) -> None:
        frame = Frame(
            duration_ms=120,
            elements=(
                TextElement(x=3, y=4, size=2, value="AB"),
                LineElement(x=0, y=60, width=128, height=2),
            ),
        )

        flat = flatten_frame(frame)

        assert flat.duration_ms == 120
        assert len(flat.elements) == 1
        assert render_frame(flat) == render_frame(frame)

    def test_flatten_frame_when_inverted_then_complement(self) -> None:
        frame = Frame(duration_ms=10, elements=(LineElement(x=0, y=0, width=128, height=64),))

        assert render_frame(flatten_frame(frame, invert=True)).lit_count() == 0


class TestFont:
    """Tests for the glyph table helpers."""

    def test_glyph_when_unknown_character_then_space(self) -> None:
        assert glyph("☃") == GLYPHS[" "]

    def test_text_width_when_scaled_then_includes_gaps(self) -> None:
        assert text_width("", 2) == 0
        assert text_width("A", 1) == 5
        assert text_width("ABC", 2) == 3 * 5 * 2 + 2 * 2

    def test_centered_x_when_too_wide_then_zero(self) -> None:
        assert centered_x("W" * 40, 2) == 0
        assert centered_x("", 1) == 64


class TestElements:
    """Tests for the tagged element union."""

    def test_element_when_unknown_type_then_unknown_variant(self) -> None:
        element = element_adapter.validate_python({"type": "circle", "r": 4})

        assert isinstance(element, UnknownElement)

    def test_element_when_missing_type_then_unknown_variant(self) -> None:
        assert isinstance(element_adapter.validate_python({"x": 1}), UnknownElement)

    def test_text_element_when_size_zero_then_one(self) -> None:
        element = element_adapter.validate_python({"type": "text", "value": "A", "size": 0})

        assert element.size == 1

    def test_bitmap_element_when_length_mismatch_then_invalid(self) -> None:
        with pytest.raises(ValidationError):
            BitmapElement(width=8, height=2, bitmap=(1,))

    def test_bitmap_element_when_odd_width_then_rows_padded(self) -> None:
        element = BitmapElement(width=9, height=3, bitmap=(0,) * 6)

        assert element.width == 9

    def test_frame_when_to_wire_then_duration_alias(self) -> None:
        frame = Frame(duration_ms=250, elements=(LineElement(x=1, y=2),))

        wire = frame.to_wire()

        assert wire["duration"] == 250
        assert wire["clear"] is True
        assert wire["elements"][0] == {"type": "line", "x": 1, "y": 2, "width": 1, "height": 1}

    def test_frame_when_parsed_from_wire_then_elements_typed(self) -> None:
        frame = Frame.model_validate(
            {"duration": 100, "elements": [{"type": "text", "value": "HI"}, {"type": "blink"}]}
        )

        assert isinstance(frame.elements[0], TextElement)
        assert isinstance(frame.elements[1], UnknownElement)

    def test_frame_when_negative_duration_then_invalid(self) -> None:
        with pytest.raises(ValidationError):
            Frame(duration_ms=-1)


class TestDeviceSettings:
    """Tests for device settings validation and merging."""

    def test_device_fields_when_defaults_then_camel_case(self) -> None:
        fields = DeviceSettings().device_fields()

        assert fields["displayRotation"] == 0
        assert fields["refreshMs"] == 3000
        assert fields["gifFps"] == 0
        assert fields["ledCustomColor"] == "#0064FF"

    def test_apply_when_partial_update_then_other_fields_kept(self) -> None:
        updated = DeviceSettings().apply(SettingsUpdate(gif_fps=10, display_rotation=2))

        assert updated.gif_fps == 10
        assert updated.display_rotation == 2
        assert updated.refresh_ms == 3000

    @pytest.mark.parametrize(
        "payload",
        [
            {"displayRotation": 1},
            {"gifFps": 31},
            {"ledCustomColor": "blue"},
            {"ledEffectMode": "strobe"},
            {"unknownField": 1},
        ],
    )
    def test_settings_update_when_invalid_then_rejected(self, payload: dict) -> None:
        with pytest.raises(ValidationError):
            SettingsUpdate.model_validate(payload)
