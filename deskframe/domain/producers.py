"""Background frame producers and the rotation task that publishes them.

Producers are small generators of one Frame each. The rotation loop builds
every producer's frame outside the display state lock, compiles them into
one rotation content and publishes it in a single call.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import time
import zoneinfo
from collections.abc import Sequence
from typing import Optional

from deskframe.core.health_tracker import HealthTracker
from deskframe.domain.compiler import CompiledContent, ContentCompiler
from deskframe.domain.display_state import DisplayStateService
from deskframe.domain.font import centered_x
from deskframe.domain.models import Frame, LineElement, TextElement

logger = logging.getLogger(__name__)

ROTATION_FRAME_MS = 3000


class FrameProducer:
    """Base class for rotation content generators."""

    name = "producer"

    async def produce(self, now: datetime.datetime) -> Frame:
        raise NotImplementedError


def _header_frame(title: str, main: str, footer: str, main_y: int = 22) -> Frame:
    return Frame(
        duration_ms=ROTATION_FRAME_MS,
        elements=(
            TextElement(x=centered_x(title, 1), y=2, size=1, value=title),
            LineElement(x=0, y=12, width=128, height=1),
            TextElement(x=centered_x(main, 2), y=main_y, size=2, value=main),
            LineElement(x=0, y=52, width=128, height=1),
            TextElement(x=centered_x(footer, 1), y=55, size=1, value=footer),
        ),
    )


class ClockProducer(FrameProducer):
    """HH:MM:SS in a configured IANA timezone with the zone abbreviation as footer."""

    name = "clock"

    def __init__(self, timezone: str = "UTC") -> None:
        try:
            self._zone = zoneinfo.ZoneInfo(timezone)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r for clock producer; using UTC", timezone)
            self._zone = zoneinfo.ZoneInfo("UTC")

    async def produce(self, now: datetime.datetime) -> Frame:
        local = now.astimezone(self._zone)
        return _header_frame("= TIME =", local.strftime("%H:%M:%S"), local.tzname() or "")


class UptimeProducer(FrameProducer):
    """Server uptime, formatted like 1d02h03m or 04m05s."""

    name = "uptime"

    def __init__(self, start_time: Optional[float] = None) -> None:
        self._start = start_time if start_time is not None else time.monotonic()

    @staticmethod
    def format_uptime(seconds: int) -> str:
        days, rem = divmod(max(0, seconds), 86400)
        hours, rem = divmod(rem, 3600)
        minutes, secs = divmod(rem, 60)
        if days:
            return f"{days}d{hours:02d}h{minutes:02d}m"
        if hours:
            return f"{hours}h{minutes:02d}m"
        return f"{minutes:02d}m{secs:02d}s"

    async def produce(self, now: datetime.datetime) -> Frame:
        uptime = self.format_uptime(int(time.monotonic() - self._start))
        return _header_frame("= UPTIME =", uptime, "deskframe")


class ProducerRotation:
    """Periodically regenerates rotation frames and publishes them.

    Args:
        producers: Producers in rotation order
        compiler: Compiler used to wrap producer frames
        interval: Seconds between ticks
        health_tracker: Optional tracker receiving heartbeats and producer errors
    """

    def __init__(
        self,
        producers: Sequence[FrameProducer],
        compiler: ContentCompiler,
        interval: float = 1.0,
        health_tracker: Optional[HealthTracker] = None,
    ) -> None:
        self.producers = list(producers)
        self.compiler = compiler
        self.interval = interval
        self._health = health_tracker
        self.latest: Optional[CompiledContent] = None

    async def build(self, now: Optional[datetime.datetime] = None) -> Optional[CompiledContent]:
        """Run every producer once. Failing producers are skipped for this tick."""
        now = now or datetime.datetime.now(datetime.timezone.utc)
        frames = []
        for producer in self.producers:
            try:
                frames.append(await producer.produce(now))
            except Exception:
                logger.exception("Producer %s failed; skipping this tick", producer.name)
                if self._health is not None:
                    self._health.record_producer_error()
        if not frames:
            return None
        self.latest = self.compiler.compile_frames(frames, kind="rotation")
        return self.latest

    async def tick(self, state: DisplayStateService) -> bool:
        """Build and publish one rotation. Returns True if the state accepted it."""
        content = await self.build()
        if self._health is not None:
            self._health.record_producer_heartbeat()
        if content is None:
            return False
        return await state.publish_rotation(content)

    async def run(self, state: DisplayStateService, stop_event: asyncio.Event) -> None:
        """Tick every ``interval`` seconds until ``stop_event`` is set."""
        logger.debug("Producer rotation starting with interval %.1fs", self.interval)
        while not stop_event.is_set():
            try:
                await self.tick(state)
            except Exception:
                logger.exception("Producer rotation tick failed")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.debug("Producer rotation stopped")
