"""Main entry point for the deskframe display client.

Runs the playback engine, the link monitor and the status beacon
side by side in one event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from typing import Any, Optional

from deskframe_client.api_client import DeviceAPIClient
from deskframe_client.beacon import BeaconMonitor, BeaconOutput
from deskframe_client.config import Config
from deskframe_client.display import NullDisplay, PygameDisplay, create_display
from deskframe_client.engine import PlaybackEngine
from deskframe_client.link import LinkMonitor

logger = logging.getLogger(__name__)

EVENT_POLL_INTERVAL = 0.1


class DeskFrameClientApp:
    """Main application coordinator.

    Wires the API client, display, link monitor and beacon to the playback
    engine and handles graceful shutdown.
    """

    def __init__(
        self,
        config: Config,
        display: Optional[NullDisplay | PygameDisplay] = None,
    ):
        """Initialize the application.

        Args:
            config: Configuration instance
            display: Display backend; built from config when omitted
        """
        self.config = config
        self.running = False
        self.stop_event = asyncio.Event()

        host, port = config.backend_address()
        self.api_client = DeviceAPIClient(config)
        self.display = display or create_display(config)
        self.link = LinkMonitor(
            host, port, interval=config.link_check_interval, timeout=config.link_timeout
        )
        self.engine = PlaybackEngine(config, self.api_client, self.display, link=self.link)
        self.beacon = BeaconMonitor(
            self.engine.snapshot, [BeaconOutput()], interval=config.beacon_interval
        )

        logger.info("DeskFrame client initialized")
        logger.info("Backend URL: %s", config.backend_url)
        logger.info("Link check: %s:%d every %.1fs", host, port, config.link_check_interval)

    async def run(self) -> None:
        """Run all loops until shutdown is requested."""
        self.running = True
        self.stop_event.clear()
        logger.info("Starting main event loop")

        tasks = [
            asyncio.create_task(self.engine.run(), name="engine"),
            asyncio.create_task(self.link.run(self.stop_event), name="link"),
            asyncio.create_task(self.beacon.run(self.stop_event), name="beacon"),
        ]

        try:
            while self.running:
                if self.display.poll_quit():
                    self.request_stop()
                    break
                await self._interruptible_sleep(EVENT_POLL_INTERVAL)
        except Exception:
            logger.exception("Error in main event loop")
        finally:
            self.engine.stop()
            self.stop_event.set()
            for task in tasks:
                if not task.done():
                    task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        logger.info("Main event loop stopped")

    async def _interruptible_sleep(self, duration: float) -> None:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self.stop_event.wait(), timeout=duration)

    def request_stop(self) -> None:
        """Stop all loops. Safe to call from a signal handler."""
        self.running = False
        self.engine.stop()
        self.stop_event.set()

    async def shutdown(self) -> None:
        """Graceful shutdown.

        Display cleanup (pygame.quit) is done by the caller after run()
        returns, since the loop polls pygame events.
        """
        logger.info("Shutting down...")
        self.request_stop()
        await self.api_client.close()
        logger.info("Shutdown complete")


def setup_logging(config: Config) -> None:
    """Set up logging configuration.

    Args:
        config: Configuration instance
    """
    log_level = getattr(logging, config.log_level, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    logger.info("Logging configured: level=%s", config.log_level)


async def main() -> None:
    """Main entry point."""
    config = Config.from_env()
    setup_logging(config)

    app = DeskFrameClientApp(config)

    loop = asyncio.get_running_loop()

    def signal_handler(sig: Any) -> None:
        logger.info("Received signal: %s", sig)
        app.request_stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))  # type: ignore[misc]

    try:
        await app.run()
    except KeyboardInterrupt:
        logger.info("Received KeyboardInterrupt")
    finally:
        await app.shutdown()
        app.display.cleanup()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    run()
