"""Pydantic models for frames, draw elements, device settings and content requests."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

FRAME_SCHEMA_VERSION = 1


def packed_row_bytes(width: int) -> int:
    """Bytes per row of a packed 1-bit bitmap (MSB = leftmost pixel)."""
    return (width + 7) // 8


# ---------------------------------------------------------------------------
# Draw elements
# ---------------------------------------------------------------------------


class TextElement(BaseModel):
    """Text drawn with the 5x7 glyph font, scaled by ``size``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    x: int = 0
    y: int = 0
    size: int = Field(1, ge=1, le=16)
    value: str = ""

    @field_validator("size", mode="before")
    @classmethod
    def default_size(cls, v: Any) -> Any:
        # 0 and null both mean the unscaled font on the wire
        return 1 if v in (0, None) else v


class BitmapElement(BaseModel):
    """Packed 1-bit bitmap, row-major, ``ceil(width/8)`` bytes per row, 1 = lit."""

    model_config = ConfigDict(frozen=True)

    type: Literal["bitmap"] = "bitmap"
    x: int = 0
    y: int = 0
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)
    bitmap: tuple[int, ...]

    @field_validator("bitmap")
    @classmethod
    def validate_bytes(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if any(b < 0 or b > 0xFF for b in v):
            raise ValueError("bitmap values must be bytes (0-255)")
        return v

    @model_validator(mode="after")
    def validate_length(self) -> BitmapElement:
        expected = packed_row_bytes(self.width) * self.height
        if len(self.bitmap) != expected:
            raise ValueError(
                f"bitmap length {len(self.bitmap)} does not match "
                f"{self.width}x{self.height} (expected {expected})"
            )
        return self


class LineElement(BaseModel):
    """Filled rectangle; used for borders, separators and progress bars."""

    model_config = ConfigDict(frozen=True)

    type: Literal["line"] = "line"
    x: int = 0
    y: int = 0
    width: int = 1
    height: int = 1


class UnknownElement(BaseModel):
    """Any element type this build does not understand. Rendering it is a no-op."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str = "unknown"


_KNOWN_ELEMENT_TYPES = frozenset({"text", "bitmap", "line"})


def _element_tag(value: Any) -> str:
    if isinstance(value, dict):
        tag = value.get("type")
    else:
        tag = getattr(value, "type", None)
    return tag if tag in _KNOWN_ELEMENT_TYPES else "unknown"


DrawElement = Annotated[
    Union[
        Annotated[TextElement, Tag("text")],
        Annotated[BitmapElement, Tag("bitmap")],
        Annotated[LineElement, Tag("line")],
        Annotated[UnknownElement, Tag("unknown")],
    ],
    Discriminator(_element_tag),
]


# ---------------------------------------------------------------------------
# Frames and sequences
# ---------------------------------------------------------------------------


class Frame(BaseModel):
    """One displayable unit. Immutable once constructed.

    Attributes:
        version: Wire schema version
        duration_ms: Hold time in milliseconds (``duration`` on the wire)
        clear: Blank the display before drawing
        elements: Ordered draw primitives
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int = FRAME_SCHEMA_VERSION
    duration_ms: int = Field(..., alias="duration", ge=0)
    clear: bool = True
    elements: tuple[DrawElement, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the device wire dict."""
        return self.model_dump(by_alias=True, mode="json")


class AnimationSequence(BaseModel):
    """Ordered, bounded set of frames compiled from one animated source.

    Replaced wholesale when new animated content arrives; never mutated.
    """

    model_config = ConfigDict(frozen=True)

    frames: tuple[Frame, ...]
    original_duration_ms: int = Field(..., ge=0)
    source_frame_count: int = Field(..., ge=0)

    @property
    def frame_count(self) -> int:
        return len(self.frames)


class PlaybackMode(str, Enum):
    """Server-side content mode advertised to devices."""

    POLLING = "polling"
    BULK_LOCAL = "bulk_local"


# ---------------------------------------------------------------------------
# Device settings
# ---------------------------------------------------------------------------

LedEffectMode = Literal["auto", "static", "flash", "pulse", "rainbow"]
_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _check_rotation(v: Optional[int]) -> Optional[int]:
    if v is not None and v not in (0, 2):
        raise ValueError("displayRotation must be 0 (normal) or 2 (180 degrees)")
    return v


class DeviceSettings(BaseModel):
    """Ancillary device configuration sent with every device response.

    Attributes:
        display_rotation: 0 = normal, 2 = rotated 180 degrees
        refresh_ms: Poll hold handed to devices for single frames
        gif_fps: 0 keeps compiled timing, otherwise every bulk frame lasts 1000 // gif_fps
        led_brightness: Beacon brightness percentage
        led_beacon_enabled: Whether the beacon LED is driven at all
        led_effect_mode: "auto" follows engine state, others force an effect
        led_custom_color: Colour used by the static/flash/pulse effects
        led_flash_speed: Flash period in milliseconds
        led_pulse_speed: Pulse period in milliseconds
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    display_rotation: int = 0
    refresh_ms: int = Field(3000, ge=500, le=60000)
    gif_fps: int = Field(0, ge=0, le=30)
    led_brightness: int = Field(100, ge=0, le=100)
    led_beacon_enabled: bool = True
    led_effect_mode: LedEffectMode = "auto"
    led_custom_color: str = Field("#0064FF", pattern=_COLOR_PATTERN)
    led_flash_speed: int = Field(500, ge=100, le=2000)
    led_pulse_speed: int = Field(1000, ge=500, le=3000)

    @field_validator("display_rotation")
    @classmethod
    def validate_rotation(cls, v: int) -> int:
        return _check_rotation(v)  # type: ignore[return-value]

    def device_fields(self) -> dict[str, Any]:
        """Fields merged into every device response."""
        return self.model_dump(by_alias=True)

    def apply(self, update: SettingsUpdate) -> DeviceSettings:
        """Return new settings with the non-null fields of ``update`` applied."""
        merged = {**self.model_dump(), **update.model_dump(exclude_none=True)}
        return DeviceSettings.model_validate(merged)


class SettingsUpdate(BaseModel):
    """Partial device settings update (POST /api/settings)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    display_rotation: Optional[int] = None
    refresh_ms: Optional[int] = Field(None, ge=500, le=60000)
    gif_fps: Optional[int] = Field(None, ge=0, le=30)
    led_brightness: Optional[int] = Field(None, ge=0, le=100)
    led_beacon_enabled: Optional[bool] = None
    led_effect_mode: Optional[LedEffectMode] = None
    led_custom_color: Optional[str] = Field(None, pattern=_COLOR_PATTERN)
    led_flash_speed: Optional[int] = Field(None, ge=100, le=2000)
    led_pulse_speed: Optional[int] = Field(None, ge=500, le=3000)

    @field_validator("display_rotation")
    @classmethod
    def validate_rotation(cls, v: Optional[int]) -> Optional[int]:
        return _check_rotation(v)


# ---------------------------------------------------------------------------
# Content requests
# ---------------------------------------------------------------------------


class TextRequest(BaseModel):
    """Static text content (POST /api/custom/text).

    Zero values mean "use the default": size 1 (2 when ``large``), duration
    5000 ms, vertically centred when ``y`` is 0, left padded when ``x`` is 0.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str = Field(..., max_length=200)
    x: int = 0
    y: int = 0
    size: int = Field(0, ge=0, le=8)
    style: Literal["", "normal", "centered", "framed"] = ""
    centered: bool = False
    framed: bool = False
    large: bool = False
    inverted: bool = False
    duration: int = Field(0, ge=0, le=3_600_000)


class MarqueeRequest(BaseModel):
    """Scrolling text content (POST /api/custom/marquee).

    Zero values mean "use the default": size 2, speed 3 px/frame, y 25,
    direction "left", 2 loops, 5 frames.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str = Field(..., min_length=1, max_length=200)
    y: int = 0
    size: int = Field(0, ge=0, le=8)
    speed: int = Field(0, ge=0, le=128)
    direction: Literal["", "left", "right"] = ""
    loops: int = Field(0, ge=0, le=10)
    max_frames: int = 0
    framed: bool = False


class CustomRequest(BaseModel):
    """Raw custom content (POST /api/custom): a bitmap or a plain message."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str = Field("", max_length=200)
    bitmap: Optional[list[int]] = None
    width: int = Field(128, ge=1, le=128)
    height: int = Field(64, ge=1, le=64)
    header: bool = False
    duration: int = Field(5000, ge=0, le=3_600_000)

    @model_validator(mode="after")
    def validate_content(self) -> CustomRequest:
        if not self.bitmap and not self.text:
            raise ValueError("either text or bitmap is required")
        return self
