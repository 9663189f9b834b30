"""Link monitoring.

Checks the server with a bounded TCP connect. The playback engine races its
work against ``wait_lost()`` so a dropped link interrupts whatever it is
doing and forces it back to Connecting.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class LinkMonitor:
    """Tracks whether the server is reachable."""

    def __init__(self, host: str, port: int, interval: float = 5.0, timeout: float = 2.0):
        self.host = host
        self.port = port
        self.interval = interval
        self.timeout = timeout
        self._up: Optional[bool] = None
        self._lost = asyncio.Event()

    @property
    def is_up(self) -> bool:
        return bool(self._up)

    async def check(self) -> bool:
        """Check the server once and update the link state."""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("Link check to %s:%d failed: %r", self.host, self.port, e)
            self.set_state(False)
            return False

        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        self.set_state(True)
        return True

    def set_state(self, up: bool) -> None:
        """Record the link state and wake anyone waiting on its loss."""
        previous = self._up
        self._up = up
        if up:
            self._lost.clear()
            if previous is False:
                logger.info("Link to %s:%d restored", self.host, self.port)
        else:
            self._lost.set()
            if previous:
                logger.warning("Link to %s:%d lost", self.host, self.port)

    async def wait_lost(self) -> None:
        """Return once the link is known to be down."""
        await self._lost.wait()

    async def run(self, stop_event: asyncio.Event) -> None:
        """Check every ``interval`` seconds until ``stop_event`` is set."""
        while not stop_event.is_set():
            await self.check()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
