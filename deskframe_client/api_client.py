"""Async HTTP client for the deskframe server.

Fetches single frames from /frame/current and whole animations from
/frame/sequence. Every request is bounded by the session timeout, and every
failure surfaces as FetchError (or its ParseError subclass) so the playback
engine can decide what to do with it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from deskframe_client.config import Config
from deskframe_client.exceptions import FetchError, ParseError
from deskframe_client.frame_buffer import FRAME_BUFFER_CAPACITY
from deskframe_client.renderer import FrameRenderer
from deskframe_client.wire import FrameResponse, SequenceResponse, parse_frame, parse_sequence

logger = logging.getLogger(__name__)


class DeviceAPIClient:
    """Async HTTP client for the device endpoints.

    Sequence frames are pre-rendered to full-screen bitmaps as they are
    parsed, so the frame buffer only ever holds raw pixels.
    """

    def __init__(self, config: Config, capacity: int = FRAME_BUFFER_CAPACITY):
        """Initialize API client.

        Args:
            config: Configuration instance
            capacity: Maximum number of sequence frames to keep
        """
        self.config = config
        self.capacity = capacity
        self.frame_endpoint = config.get_api_endpoint("/frame/current")
        self.sequence_endpoint = config.get_api_endpoint("/frame/sequence")
        self._renderer = FrameRenderer(config.display_width, config.display_height)

        # Session (created on first use)
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session.

        Returns:
            Active ClientSession
        """
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.api_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)

        return self._session

    async def _get_json(self, url: str) -> Any:
        """GET ``url`` and decode the JSON body.

        Raises:
            FetchError: On connection failure, timeout or non-2xx status
            ParseError: If the body is not valid JSON
        """
        session = await self._get_session()
        try:
            async with session.get(
                url,
                headers={"Accept": "application/json", "Cache-Control": "no-cache"},
            ) as response:
                if response.status >= 400:
                    raise FetchError(f"HTTP {response.status} from {url}")
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"request to {url} failed: {e!r}") from e

        try:
            return json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"invalid JSON from {url}: {e}") from e

    async def fetch_frame(self) -> FrameResponse:
        """Fetch the current single frame."""
        data = await self._get_json(self.frame_endpoint)
        frame = parse_frame(data)
        logger.debug(
            "Frame fetched - %d elements, isGifMode: %s",
            len(frame.elements),
            frame.is_gif_mode,
        )
        return frame

    async def fetch_sequence(self) -> SequenceResponse:
        """Fetch and pre-render the current animation, if any."""
        data = await self._get_json(self.sequence_endpoint)
        sequence = parse_sequence(data, self._renderer.render_standalone, self.capacity)
        logger.debug(
            "Sequence fetched - isGifMode: %s, %d frames",
            sequence.is_gif_mode,
            len(sequence.frames),
        )
        return sequence

    async def close(self) -> None:
        """Close the HTTP session.

        Should be called during shutdown to cleanly close connections.
        """
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.debug("API client session closed")
