"""Lenient parsing of server responses into client-side values.

The server is trusted for intent but not for well-formedness. An element
that fails validation is dropped, not fatal. Values that would make the
device misbehave (oversized sequences, damaged bitmaps, absurd durations)
are clamped or discarded here, before they reach the engine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from deskframe.domain.models import DeviceSettings, DrawElement
from deskframe_client.exceptions import ParseError
from deskframe_client.frame_buffer import FRAME_BUFFER_CAPACITY, BufferedFrame

logger = logging.getLogger(__name__)

MIN_HOLD_MS = 20
MAX_HOLD_MS = 60_000
DEFAULT_SEQUENCE_FRAME_MS = 100

_element_adapter: TypeAdapter[Any] = TypeAdapter(DrawElement)

_SETTINGS_KEYS = tuple(
    field.alias or name for name, field in DeviceSettings.model_fields.items()
)


@dataclass(frozen=True)
class FrameResponse:
    """A single frame as served by /frame/current."""

    elements: tuple[Any, ...]
    duration_ms: Optional[int]
    clear: bool
    is_gif_mode: bool
    settings: Optional[DeviceSettings]


@dataclass(frozen=True)
class SequenceResponse:
    """A bulk animation as served by /frame/sequence, pre-rendered."""

    is_gif_mode: bool
    frames: tuple[BufferedFrame, ...]
    settings: Optional[DeviceSettings]

    @property
    def has_animation(self) -> bool:
        return self.is_gif_mode and len(self.frames) > 0


def _require_object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ParseError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def _duration(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    return int(min(max(value, MIN_HOLD_MS), MAX_HOLD_MS))


def validate_elements(raw: Any) -> tuple[tuple[Any, ...], int]:
    """Validate each element independently.

    Returns:
        (valid elements, number of elements dropped as malformed)
    """
    if not isinstance(raw, list):
        if raw is not None:
            logger.debug("Ignoring non-list elements field: %s", type(raw).__name__)
        return (), 0
    elements = []
    dropped = 0
    for i, item in enumerate(raw):
        try:
            elements.append(_element_adapter.validate_python(item))
        except ValidationError as e:
            dropped += 1
            logger.debug("Dropping malformed element %d (%d errors)", i, e.error_count())
    return tuple(elements), dropped


def parse_settings(payload: dict[str, Any]) -> Optional[DeviceSettings]:
    """Extract device fields, discarding individual fields that fail validation.

    Returns None when the payload carries no device fields at all.
    """
    data = {key: payload[key] for key in _SETTINGS_KEYS if key in payload}
    if not data:
        return None
    while data:
        try:
            return DeviceSettings.model_validate(data)
        except ValidationError as e:
            bad = {str(err["loc"][0]) for err in e.errors() if err["loc"]} & data.keys()
            if not bad:
                break
            logger.debug("Ignoring invalid device fields: %s", sorted(bad))
            for key in bad:
                del data[key]
    return DeviceSettings()


def parse_frame(payload: Any) -> FrameResponse:
    """Parse a /frame/current response.

    Raises:
        ParseError: If the payload is not a JSON object
    """
    body = _require_object(payload)
    elements, _ = validate_elements(body.get("elements"))
    return FrameResponse(
        elements=elements,
        duration_ms=_duration(body.get("duration")),
        clear=body.get("clear") is not False,
        is_gif_mode=body.get("isGifMode") is True,
        settings=parse_settings(body),
    )


def parse_sequence(
    payload: Any,
    render: Callable[[Sequence[Any]], bytes],
    capacity: int = FRAME_BUFFER_CAPACITY,
) -> SequenceResponse:
    """Parse a /frame/sequence response and pre-render its frames.

    Sequences longer than ``capacity`` are truncated. Frames that are not
    objects, or that hold an element failing validation (typically a
    bitmap whose length disagrees with its size), are dropped whole.

    Raises:
        ParseError: If the payload is not an object, or it announces an
            animation that yields no usable frame
    """
    body = _require_object(payload)
    settings = parse_settings(body)
    is_gif_mode = body.get("isGifMode") is True
    raw_frames = body.get("frames")

    if not is_gif_mode:
        return SequenceResponse(is_gif_mode=False, frames=(), settings=settings)
    frame_count = body.get("frameCount")
    if isinstance(frame_count, int) and not isinstance(frame_count, bool) and frame_count == 0:
        # An empty animation is announced by the count alone
        return SequenceResponse(is_gif_mode=True, frames=(), settings=settings)
    if not isinstance(raw_frames, list):
        raise ParseError("animated sequence without a frames list")
    if not raw_frames:
        return SequenceResponse(is_gif_mode=True, frames=(), settings=settings)

    if len(raw_frames) > capacity:
        logger.warning(
            "Sequence has %d frames, keeping the first %d", len(raw_frames), capacity
        )
        raw_frames = raw_frames[:capacity]

    frames = []
    for i, raw in enumerate(raw_frames):
        if not isinstance(raw, dict):
            logger.debug("Dropping sequence frame %d: not an object", i)
            continue
        elements, dropped = validate_elements(raw.get("elements"))
        if dropped:
            logger.debug("Dropping sequence frame %d: %d malformed elements", i, dropped)
            continue
        frames.append(
            BufferedFrame(
                bitmap=render(elements),
                duration_ms=_duration(raw.get("duration")) or DEFAULT_SEQUENCE_FRAME_MS,
                clear=raw.get("clear") is not False,
            )
        )

    if not frames:
        raise ParseError("animated sequence contained no usable frames")
    return SequenceResponse(is_gif_mode=True, frames=tuple(frames), settings=settings)
