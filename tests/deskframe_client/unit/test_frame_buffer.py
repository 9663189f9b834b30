"""Unit tests for the preallocated frame buffer."""

import pytest

from deskframe_client.frame_buffer import FRAME_BUFFER_CAPACITY, BufferedFrame, FrameBuffer

pytestmark = pytest.mark.unit

FRAME_BYTES = 1024


def _frame(fill: int, duration_ms: int = 100, clear: bool = True) -> BufferedFrame:
    return BufferedFrame(bitmap=bytes([fill]) * FRAME_BYTES, duration_ms=duration_ms, clear=clear)


class TestFrameBuffer:
    def test_init_when_default_then_capacity_and_storage_preallocated(self) -> None:
        buffer = FrameBuffer()

        assert buffer.capacity == FRAME_BUFFER_CAPACITY
        assert len(buffer.raw()) == FRAME_BUFFER_CAPACITY * FRAME_BYTES
        assert buffer.is_empty

    def test_init_when_zero_capacity_then_raises(self) -> None:
        with pytest.raises(ValueError):
            FrameBuffer(capacity=0)

    def test_replace_when_valid_then_frames_readable(self) -> None:
        buffer = FrameBuffer(capacity=4)

        buffer.replace([_frame(1, 50), _frame(2, 70, clear=False)])

        assert len(buffer) == 2
        assert buffer.bitmap(1) == bytes([2]) * FRAME_BYTES
        assert buffer.durations() == (50, 70)
        assert buffer.clear_flag(1) is False
        assert buffer.frame(0) == _frame(1, 50)

    def test_replace_when_shorter_sequence_then_tail_zeroed(self) -> None:
        buffer = FrameBuffer(capacity=3)
        buffer.replace([_frame(0xFF), _frame(0xFF), _frame(0xFF)])

        buffer.replace([_frame(0x0F)])

        raw = buffer.raw()
        assert raw[:FRAME_BYTES] == bytes([0x0F]) * FRAME_BYTES
        assert raw[FRAME_BYTES:] == bytes(2 * FRAME_BYTES)

    @pytest.mark.parametrize(
        "frames",
        [
            [],
            [_frame(1)] * 5,
            [_frame(1), BufferedFrame(bitmap=b"\x00" * 10, duration_ms=100)],
            [_frame(1), _frame(2, duration_ms=0)],
        ],
        ids=["empty", "over-capacity", "short-bitmap", "zero-duration"],
    )
    def test_replace_when_invalid_then_previous_contents_kept(
        self, frames: list[BufferedFrame]
    ) -> None:
        buffer = FrameBuffer(capacity=4)
        buffer.replace([_frame(9, 80)])
        before = buffer.raw()

        with pytest.raises(ValueError):
            buffer.replace(frames)

        assert buffer.raw() == before
        assert buffer.durations() == (80,)

    def test_clear_when_loaded_then_empty_and_zeroed(self) -> None:
        buffer = FrameBuffer(capacity=2)
        buffer.replace([_frame(7)])

        buffer.clear()

        assert buffer.is_empty
        assert buffer.raw() == bytes(2 * FRAME_BYTES)

    def test_bitmap_when_index_out_of_range_then_raises(self) -> None:
        buffer = FrameBuffer(capacity=2)
        buffer.replace([_frame(1)])

        with pytest.raises(IndexError):
            buffer.bitmap(1)

    def test_fingerprint_when_same_frames_loaded_twice_then_unchanged(self) -> None:
        buffer = FrameBuffer(capacity=4)
        buffer.replace([_frame(1), _frame(2)])
        first = buffer.fingerprint()

        buffer.replace([_frame(1), _frame(2)])

        assert buffer.fingerprint() == first

    def test_fingerprint_when_duration_differs_then_changes(self) -> None:
        a = FrameBuffer(capacity=4)
        b = FrameBuffer(capacity=4)
        a.replace([_frame(1, 100)])
        b.replace([_frame(1, 120)])

        assert a.fingerprint() != b.fingerprint()

    def test_fingerprint_when_empty_buffers_then_equal(self) -> None:
        a = FrameBuffer(capacity=2)
        b = FrameBuffer(capacity=2)
        b.replace([_frame(3)])
        b.clear()

        assert a.fingerprint() == b.fingerprint()
