"""Fixed-capacity storage for downloaded animation frames.

All storage is allocated once, when the buffer is created. Replacing the
contents copies into the existing storage, and a replacement that fails
validation leaves the previous contents untouched.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Sequence

from deskframe.domain.canvas import FULL_FRAME_BYTES

logger = logging.getLogger(__name__)

FRAME_BUFFER_CAPACITY = 20


@dataclass(frozen=True)
class BufferedFrame:
    """One pre-rendered full-screen frame."""

    bitmap: bytes
    duration_ms: int
    clear: bool = True


class FrameBuffer:
    """Preallocated ring of full-screen bitmaps with per-frame durations.

    Slots beyond ``count`` are always zeroed so two buffers holding the
    same frames compare equal byte-for-byte.
    """

    def __init__(
        self, capacity: int = FRAME_BUFFER_CAPACITY, frame_bytes: int = FULL_FRAME_BYTES
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.frame_bytes = frame_bytes
        self._storage = bytearray(capacity * frame_bytes)
        self._durations = [0] * capacity
        self._clear = [True] * capacity
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def count(self) -> int:
        return self._count

    @property
    def is_empty(self) -> bool:
        return self._count == 0

    def replace(self, frames: Sequence[BufferedFrame]) -> None:
        """Replace the contents with ``frames``.

        Every frame is validated before any slot is written.

        Raises:
            ValueError: If ``frames`` is empty, exceeds capacity, or holds a
                frame with the wrong bitmap size or a non-positive duration
        """
        if not frames:
            raise ValueError("cannot load an empty sequence, use clear()")
        if len(frames) > self.capacity:
            raise ValueError(f"{len(frames)} frames exceed capacity {self.capacity}")
        for i, frame in enumerate(frames):
            if len(frame.bitmap) != self.frame_bytes:
                raise ValueError(
                    f"frame {i} has {len(frame.bitmap)} bytes, expected {self.frame_bytes}"
                )
            if frame.duration_ms <= 0:
                raise ValueError(f"frame {i} has non-positive duration {frame.duration_ms}")

        fb = self.frame_bytes
        for i, frame in enumerate(frames):
            self._storage[i * fb : (i + 1) * fb] = frame.bitmap
            self._durations[i] = frame.duration_ms
            self._clear[i] = frame.clear
        self._zero_from(len(frames))
        self._count = len(frames)
        logger.debug("Frame buffer loaded with %d frames", self._count)

    def clear(self) -> None:
        self._zero_from(0)
        self._count = 0

    def _zero_from(self, index: int) -> None:
        start = index * self.frame_bytes
        self._storage[start:] = bytes(len(self._storage) - start)
        for i in range(index, self.capacity):
            self._durations[i] = 0
            self._clear[i] = True

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self._count:
            raise IndexError(f"frame index {index} out of range (count {self._count})")

    def bitmap(self, index: int) -> bytes:
        self._check_index(index)
        fb = self.frame_bytes
        return bytes(self._storage[index * fb : (index + 1) * fb])

    def duration_ms(self, index: int) -> int:
        self._check_index(index)
        return self._durations[index]

    def clear_flag(self, index: int) -> bool:
        self._check_index(index)
        return self._clear[index]

    def frame(self, index: int) -> BufferedFrame:
        return BufferedFrame(
            bitmap=self.bitmap(index),
            duration_ms=self.duration_ms(index),
            clear=self.clear_flag(index),
        )

    def durations(self) -> tuple[int, ...]:
        return tuple(self._durations[: self._count])

    def raw(self) -> bytes:
        """Copy of the whole storage area, including unused slots."""
        return bytes(self._storage)

    def fingerprint(self) -> str:
        """Digest of the loaded frames. Equal contents give equal digests."""
        digest = hashlib.sha256()
        digest.update(self._count.to_bytes(4, "big"))
        digest.update(self._storage[: self._count * self.frame_bytes])
        for i in range(self._count):
            digest.update(f"{self._durations[i]}:{int(self._clear[i])};".encode())
        return digest.hexdigest()
