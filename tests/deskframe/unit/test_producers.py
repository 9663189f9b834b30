"""Unit tests for deskframe.domain.producers."""

import asyncio
import datetime

import pytest

from deskframe.core.health_tracker import HealthTracker
from deskframe.domain.compiler import ContentCompiler
from deskframe.domain.display_state import DisplayStateService
from deskframe.domain.models import Frame, TextElement, TextRequest
from deskframe.domain.producers import (
    ROTATION_FRAME_MS,
    ClockProducer,
    FrameProducer,
    ProducerRotation,
    UptimeProducer,
)

pytestmark = pytest.mark.unit

NOON_UTC = datetime.datetime(2024, 6, 1, 12, 34, 56, tzinfo=datetime.timezone.utc)


def _texts(frame: Frame) -> list[str]:
    return [e.value for e in frame.elements if isinstance(e, TextElement)]


class FailingProducer(FrameProducer):
    name = "failing"

    async def produce(self, now: datetime.datetime) -> Frame:
        raise RuntimeError("sensor offline")


class TestClockProducer:
    """Tests for the clock producer."""

    async def test_produce_when_utc_then_time_and_zone(self) -> None:
        frame = await ClockProducer("UTC").produce(NOON_UTC)

        assert _texts(frame) == ["= TIME =", "12:34:56", "UTC"]
        assert frame.duration_ms == ROTATION_FRAME_MS

    async def test_produce_when_other_zone_then_converted(self) -> None:
        frame = await ClockProducer("Asia/Tokyo").produce(NOON_UTC)

        assert _texts(frame)[1] == "21:34:56"

    async def test_init_when_unknown_zone_then_falls_back_to_utc(self) -> None:
        frame = await ClockProducer("Mars/Olympus_Mons").produce(NOON_UTC)

        assert _texts(frame)[2] == "UTC"


class TestUptimeProducer:
    """Tests for uptime formatting."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0, "00m00s"), (65, "01m05s"), (3 * 3600 + 120, "3h02m"), (90061, "1d01h01m")],
    )
    def test_format_uptime_when_seconds_then_compact(self, seconds: int, expected: str) -> None:
        assert UptimeProducer.format_uptime(seconds) == expected


class TestProducerRotation:
    """Tests for the rotation task."""

    async def test_build_when_producer_fails_then_others_published(self) -> None:
        tracker = HealthTracker()
        rotation = ProducerRotation(
            [ClockProducer(), FailingProducer(), UptimeProducer()],
            ContentCompiler(),
            health_tracker=tracker,
        )

        content = await rotation.build(NOON_UTC)

        assert content is not None
        assert content.frame_count == 2
        assert rotation.latest is content
        assert tracker.get_background_task_status()["errors"] == 1

    async def test_build_when_all_fail_then_none(self) -> None:
        rotation = ProducerRotation([FailingProducer()], ContentCompiler())

        assert await rotation.build(NOON_UTC) is None

    async def test_tick_when_custom_content_then_not_applied(
        self, display_state: DisplayStateService, compiler: ContentCompiler
    ) -> None:
        rotation = ProducerRotation([ClockProducer()], compiler)
        await display_state.publish(compiler.compile_text(TextRequest(text="HOLD")))

        assert await rotation.tick(display_state) is False

    async def test_tick_when_rotation_mode_then_published(
        self, display_state: DisplayStateService, compiler: ContentCompiler
    ) -> None:
        tracker = HealthTracker()
        rotation = ProducerRotation([ClockProducer()], compiler, health_tracker=tracker)

        assert await rotation.tick(display_state) is True
        assert (await display_state.snapshot()).kind == "rotation"
        assert tracker.get_background_task_status()["status"] == "running"

    async def test_run_when_stop_event_set_then_returns(
        self, display_state: DisplayStateService, compiler: ContentCompiler
    ) -> None:
        rotation = ProducerRotation([UptimeProducer()], compiler, interval=0.01)
        stop_event = asyncio.Event()

        task = asyncio.create_task(rotation.run(display_state, stop_event))
        await asyncio.sleep(0.05)
        stop_event.set()
        await asyncio.wait_for(task, timeout=1.0)

        assert (await display_state.snapshot()).kind == "rotation"
