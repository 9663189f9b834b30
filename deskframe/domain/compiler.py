"""Content-to-frame compiler.

Turns uploads and generated content into either a single frame (Polling
mode) or a bounded AnimationSequence (BulkLocal mode). All decoding,
rasterizing and flattening happens here, before the display state lock is
taken; the result is immutable and published in one swap.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from PIL import Image

from deskframe.core.exceptions import DecodeError
from deskframe.domain.canvas import DISPLAY_HEIGHT, DISPLAY_WIDTH, flatten_frame
from deskframe.domain.font import GLYPH_ADVANCE, GLYPH_HEIGHT, text_width
from deskframe.domain.models import (
    AnimationSequence,
    BitmapElement,
    CustomRequest,
    Frame,
    LineElement,
    MarqueeRequest,
    PlaybackMode,
    TextElement,
    TextRequest,
)
from deskframe.domain.rasterizer import DECODE_ERRORS, decode_image, rasterize
from deskframe.domain.resampler import clamp_cap, resample

logger = logging.getLogger(__name__)

STATIC_IMAGE_DURATION_MS = 5000
TEXT_DURATION_MS = 5000
DEFAULT_UPLOAD_CAP = 10
DEFAULT_MARQUEE_CAP = 5
MARQUEE_STEP_MS = 50
FRAME_INSET = 4


def border_elements(width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT) -> tuple[LineElement, ...]:
    """One-pixel frame around the display edge."""
    return (
        LineElement(x=0, y=0, width=width, height=1),
        LineElement(x=0, y=height - 1, width=width, height=1),
        LineElement(x=0, y=0, width=1, height=height),
        LineElement(x=width - 1, y=0, width=1, height=height),
    )


@dataclass(frozen=True)
class CompiledContent:
    """Result of one compilation, ready to publish.

    Attributes:
        kind: Content source ("upload", "marquee", "text", "custom", "rotation")
        mode: Playback mode the server enters when this is published
        frames: Frames in playback order
        sequence: The animation when ``mode`` is BULK_LOCAL
        wire_frames: ``frames`` serialized for the device protocol
        custom: User content; blocks producer rotation until reset
    """

    kind: str
    mode: PlaybackMode
    frames: tuple[Frame, ...]
    sequence: Optional[AnimationSequence] = None
    wire_frames: tuple[dict[str, Any], ...] = field(default=(), repr=False)
    custom: bool = True

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def summary(self) -> dict[str, Any]:
        """Response body for content endpoints."""
        body: dict[str, Any] = {
            "success": True,
            "kind": self.kind,
            "mode": self.mode.value,
            "frameCount": self.frame_count,
            "autoPlay": self.mode is PlaybackMode.BULK_LOCAL,
        }
        if self.sequence is not None:
            body["sourceFrameCount"] = self.sequence.source_frame_count
            body["originalDurationMs"] = self.sequence.original_duration_ms
        return body


def _build(
    kind: str,
    frames: Sequence[Frame],
    *,
    animated: bool,
    original_duration_ms: Optional[int] = None,
    source_frame_count: Optional[int] = None,
    custom: bool = True,
) -> CompiledContent:
    frames = tuple(frames)
    sequence = None
    if animated:
        sequence = AnimationSequence(
            frames=frames,
            original_duration_ms=(
                original_duration_ms
                if original_duration_ms is not None
                else sum(f.duration_ms for f in frames)
            ),
            source_frame_count=(
                source_frame_count if source_frame_count is not None else len(frames)
            ),
        )
    return CompiledContent(
        kind=kind,
        mode=PlaybackMode.BULK_LOCAL if animated else PlaybackMode.POLLING,
        frames=frames,
        sequence=sequence,
        wire_frames=tuple(frame.to_wire() for frame in frames),
        custom=custom,
    )


def _is_multi_frame(image: Image.Image) -> bool:
    try:
        return bool(getattr(image, "is_animated", False))
    except DECODE_ERRORS:
        return True


class ContentCompiler:
    """Compiles content requests into publishable frames.

    Args:
        width: Display width in pixels
        height: Display height in pixels
        default_upload_cap: Frame cap used when an upload does not specify one
    """

    def __init__(
        self,
        width: int = DISPLAY_WIDTH,
        height: int = DISPLAY_HEIGHT,
        default_upload_cap: int = DEFAULT_UPLOAD_CAP,
    ) -> None:
        self.width = width
        self.height = height
        self.default_upload_cap = clamp_cap(default_upload_cap)

    def _bitmap_frame(self, bitmap: bytes, duration_ms: int) -> Frame:
        return Frame(
            duration_ms=duration_ms,
            clear=True,
            elements=(
                BitmapElement(
                    x=0, y=0, width=self.width, height=self.height, bitmap=tuple(bitmap)
                ),
            ),
        )

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def compile_upload(
        self,
        data: bytes,
        max_frames: Optional[int] = None,
        filename: Optional[str] = None,
    ) -> CompiledContent:
        """Compile uploaded image bytes.

        GIFs and any multi-frame container become a resampled sequence in
        BulkLocal mode; everything else becomes one static frame.

        Raises:
            DecodeError: If the upload cannot be decoded
        """
        image = decode_image(data)
        animated = image.format == "GIF" or _is_multi_frame(image)

        if not animated:
            bitmap = rasterize(image, self.width, self.height)
            logger.info(
                "Compiled static image %s (%s %dx%d)",
                filename or "<upload>",
                image.format,
                image.width,
                image.height,
            )
            return _build("upload", [self._bitmap_frame(bitmap, STATIC_IMAGE_DURATION_MS)], animated=False)

        cap = clamp_cap(max_frames if max_frames is not None else self.default_upload_cap)
        durations = self._frame_durations(image)
        result = resample(durations, cap)

        rastered: dict[int, bytes] = {}
        frames = []
        for index, duration in zip(result.indices, result.durations_ms):
            if index not in rastered:
                rastered[index] = self._rasterize_frame(image, index)
            frames.append(self._bitmap_frame(rastered[index], duration))

        logger.info(
            "Compiled animation %s: %d source frames (%d ms) -> %d frames",
            filename or "<upload>",
            len(durations),
            sum(durations),
            len(frames),
        )
        return _build(
            "upload",
            frames,
            animated=True,
            original_duration_ms=sum(durations),
            source_frame_count=len(durations),
        )

    def _frame_durations(self, image: Image.Image) -> list[int]:
        """Per-frame durations in ms, stopping at the first frame that fails to decode."""
        durations: list[int] = []
        index = 0
        while True:
            try:
                image.seek(index)
                image.load()
            except EOFError:
                break
            except DECODE_ERRORS:
                logger.warning(
                    "Animation truncated at frame %d; keeping %d decoded frames",
                    index,
                    len(durations),
                )
                break
            durations.append(max(0, int(image.info.get("duration", 0) or 0)))
            index += 1
        if not durations:
            raise DecodeError("animation contains no decodable frames")
        return durations

    def _rasterize_frame(self, image: Image.Image, index: int) -> bytes:
        try:
            image.seek(index)
        except DECODE_ERRORS as exc:
            raise DecodeError(f"failed to decode frame {index}: {exc}") from exc
        return rasterize(image, self.width, self.height)

    # ------------------------------------------------------------------
    # Generated content
    # ------------------------------------------------------------------

    def marquee_positions(self, req: MarqueeRequest) -> list[int]:
        """X positions of the text for every scroll step of every loop."""
        size = req.size or 2
        speed = req.speed or 3
        direction = req.direction or "left"
        loops = req.loops or 2

        text_px = len(req.text) * size * GLYPH_ADVANCE
        total_distance = self.width + text_px

        positions: list[int] = []
        for _ in range(loops):
            for offset in range(0, total_distance, speed):
                if direction == "left":
                    positions.append(self.width - offset)
                else:
                    positions.append(offset - text_px)
        return positions

    def compile_marquee(self, req: MarqueeRequest) -> CompiledContent:
        """Compile scrolling text into a flattened BulkLocal sequence."""
        size = req.size or 2
        y = req.y or 25
        positions = self.marquee_positions(req)
        cap = clamp_cap(req.max_frames if req.max_frames >= 2 else DEFAULT_MARQUEE_CAP)
        result = resample([MARQUEE_STEP_MS] * len(positions), cap)

        border = border_elements(self.width, self.height) if req.framed else ()
        frames = []
        for index, duration in zip(result.indices, result.durations_ms):
            frame = Frame(
                duration_ms=duration,
                elements=(*border, TextElement(x=positions[index], y=y, size=size, value=req.text)),
            )
            frames.append(flatten_frame(frame))

        logger.info(
            "Compiled marquee %r: %d positions -> %d frames", req.text, len(positions), len(frames)
        )
        return _build(
            "marquee",
            frames,
            animated=True,
            original_duration_ms=len(positions) * MARQUEE_STEP_MS,
            source_frame_count=len(positions),
        )

    def compile_text(self, req: TextRequest) -> CompiledContent:
        """Compile static text with optional centring, border and inversion."""
        centered = req.centered or req.style == "centered"
        framed = req.framed or req.style == "framed"
        if req.large:
            size = 2
        elif req.size > 0:
            size = req.size
        else:
            size = 1
        duration = req.duration or TEXT_DURATION_MS

        width_px = text_width(req.text, size)
        inset = FRAME_INSET if framed else 0

        y = req.y
        if y == 0:
            y = (self.height - GLYPH_HEIGHT * size) // 2

        x = req.x
        if centered:
            available = self.width - inset * 2
            x = (available - width_px) // 2 + inset
            x = max(x, inset)
        elif x == 0:
            x = inset + 2

        elements: list[Any] = list(border_elements(self.width, self.height)) if framed else []
        elements.append(TextElement(x=x, y=y, size=size, value=req.text))
        frame = Frame(duration_ms=duration, elements=tuple(elements))

        if req.inverted:
            frame = flatten_frame(frame, invert=True)

        logger.info(
            "Compiled text: centered=%s framed=%s size=%d inverted=%s",
            centered,
            framed,
            size,
            req.inverted,
        )
        return _build("text", [frame], animated=False)

    def compile_custom(self, req: CustomRequest) -> CompiledContent:
        """Compile a raw bitmap or a plain message frame.

        Raises:
            DecodeError: If the bitmap length does not match width x height
        """
        if req.bitmap:
            canvas_bytes = (req.width + 7) // 8 * req.height
            if len(req.bitmap) != canvas_bytes:
                raise DecodeError(
                    f"bitmap has {len(req.bitmap)} bytes, expected {canvas_bytes} "
                    f"for {req.width}x{req.height}"
                )
            try:
                element: Any = BitmapElement(
                    x=0, y=0, width=req.width, height=req.height, bitmap=tuple(req.bitmap)
                )
            except ValueError as exc:
                raise DecodeError(str(exc)) from exc
            elements: tuple[Any, ...] = (element,)
        else:
            message = TextElement(x=0, y=30, size=2, value=req.text)
            if req.header:
                elements = (TextElement(x=0, y=0, size=1, value="> MESSAGE"), message)
            else:
                elements = (message,)

        return _build("custom", [Frame(duration_ms=req.duration, elements=elements)], animated=False)

    def compile_frames(
        self,
        frames: Sequence[Frame],
        *,
        kind: str = "rotation",
        animated: bool = False,
        custom: bool = False,
    ) -> CompiledContent:
        """Wrap producer frames for publishing.

        Rotation frames are polled one at a time; only explicitly animated
        producer output becomes a BulkLocal sequence (flattened to bitmaps).
        """
        if animated:
            frames = [flatten_frame(frame) for frame in frames]
        return _build(kind, frames, animated=animated, custom=custom)

    def boot_content(self) -> CompiledContent:
        """Placeholder shown until the first producer tick."""
        frame = Frame(
            duration_ms=1000,
            elements=(TextElement(x=20, y=25, size=2, value="BOOTING..."),),
        )
        return _build("boot", [frame], animated=False, custom=False)
