"""Authoritative display state and the mode negotiation payloads.

One DisplayStateService instance owns the current content, playback mode,
rotation index and device settings behind a single asyncio.Lock. Writers
hand in fully compiled content and the swap happens in one short critical
section, so readers never observe a half-replaced frame list.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from deskframe.core.exceptions import NoContentError
from deskframe.core.health_tracker import HealthTracker
from deskframe.domain.compiler import CompiledContent
from deskframe.domain.models import DeviceSettings, PlaybackMode, SettingsUpdate

logger = logging.getLogger(__name__)

DEFAULT_BULK_FRAME_LIMIT = 20


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only view of the display state for status endpoints."""

    mode: PlaybackMode
    kind: str
    frame_count: int
    index: int
    custom: bool
    version: int
    settings: DeviceSettings

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "isGifMode": self.mode is PlaybackMode.BULK_LOCAL,
            "kind": self.kind,
            "frameCount": self.frame_count,
            "index": self.index,
            "customMode": self.custom,
            "contentVersion": self.version,
            "settings": self.settings.device_fields(),
        }


class DisplayStateService:
    """Holds what the display should show and serves device payloads.

    Args:
        initial: Content shown before anything is published
        settings: Initial device settings
        bulk_frame_limit: Maximum frames returned by the bulk sequence endpoint
        health_tracker: Optional tracker notified of publishes and device polls
    """

    def __init__(
        self,
        initial: CompiledContent,
        settings: Optional[DeviceSettings] = None,
        bulk_frame_limit: int = DEFAULT_BULK_FRAME_LIMIT,
        health_tracker: Optional[HealthTracker] = None,
    ) -> None:
        self._lock = asyncio.Lock()
        self._content = initial
        self._index = 0
        self._version = 0
        self._default_settings = settings or DeviceSettings()
        self._settings = self._default_settings
        self._bulk_frame_limit = max(1, bulk_frame_limit)
        self._health = health_tracker

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    async def publish(self, content: CompiledContent) -> int:
        """Swap in new content atomically and reset the frame index.

        Returns:
            The new content version
        """
        if not content.frames:
            raise ValueError("cannot publish content without frames")
        async with self._lock:
            self._content = content
            self._index = 0
            self._version += 1
            version = self._version
        if self._health is not None:
            self._health.record_publish(content.kind)
        logger.info(
            "Published %s content: %d frame(s), mode=%s (v%d)",
            content.kind,
            content.frame_count,
            content.mode.value,
            version,
        )
        return version

    async def publish_rotation(self, content: CompiledContent) -> bool:
        """Publish producer output unless custom content is being shown.

        The rotation index is kept (modulo the new length) so regenerated
        rotation frames do not restart the cycle every tick.

        Returns:
            True if the content was applied
        """
        if not content.frames:
            return False
        async with self._lock:
            if self._content.custom:
                return False
            previous_kind = self._content.kind
            self._content = content
            self._index %= len(content.frames)
            self._version += 1
        if self._health is not None:
            self._health.record_publish(content.kind)
        if previous_kind != content.kind:
            logger.debug("Rotation content active (%d frames)", content.frame_count)
        return True

    async def reset(self, content: CompiledContent) -> None:
        """Drop custom content and settings, returning to ``content`` (normally rotation)."""
        async with self._lock:
            self._content = content
            self._index = 0
            self._version += 1
            self._settings = self._default_settings
        logger.info("Display state reset to %s content", content.kind)

    async def update_settings(self, update: SettingsUpdate) -> DeviceSettings:
        """Apply a validated partial settings update and return the result."""
        async with self._lock:
            self._settings = self._settings.apply(update)
            settings = self._settings
        logger.info("Device settings updated: %s", update.model_dump(exclude_none=True))
        return settings

    async def get_settings(self) -> DeviceSettings:
        async with self._lock:
            return self._settings

    # ------------------------------------------------------------------
    # Device payloads
    # ------------------------------------------------------------------

    def _frame_payload_locked(self) -> dict[str, Any]:
        content = self._content
        if not content.wire_frames:
            raise NoContentError("no frame available")
        payload = dict(content.wire_frames[self._index % len(content.wire_frames)])
        # Devices hold single frames for the configured refresh interval.
        payload["duration"] = self._settings.refresh_ms
        payload["isGifMode"] = content.mode is PlaybackMode.BULK_LOCAL
        payload.update(self._settings.device_fields())
        return payload

    async def current_frame_payload(self) -> dict[str, Any]:
        """Single-frame response for the current index, with the mode hint."""
        async with self._lock:
            payload = self._frame_payload_locked()
        if self._health is not None:
            self._health.record_device_poll()
        return payload

    async def step_frame_payload(self, delta: int = 1) -> dict[str, Any]:
        """Move the index by ``delta`` (wrapping) and return that frame."""
        async with self._lock:
            count = len(self._content.frames)
            if count:
                self._index = (self._index + delta) % count
            payload = self._frame_payload_locked()
        if self._health is not None:
            self._health.record_device_poll()
        return payload

    async def sequence_payload(self) -> dict[str, Any]:
        """Bulk response; reports no animation unless the mode is BulkLocal."""
        async with self._lock:
            content = self._content
            settings = self._settings

        body: dict[str, Any] = {}
        if content.mode is not PlaybackMode.BULK_LOCAL:
            body.update({"isGifMode": False, "frameCount": 0, "frames": []})
        else:
            frames = [dict(f) for f in content.wire_frames[: self._bulk_frame_limit]]
            if settings.gif_fps > 0:
                override = max(1, 1000 // settings.gif_fps)
                for frame in frames:
                    frame["duration"] = override
            body.update(
                {
                    "isGifMode": True,
                    "frameCount": len(frames),
                    "frames": frames,
                }
            )
            if content.sequence is not None:
                body["sourceFrameCount"] = content.sequence.source_frame_count
                body["originalDurationMs"] = content.sequence.original_duration_ms
        body.update(settings.device_fields())

        if self._health is not None:
            self._health.record_device_poll()
        return body

    async def snapshot(self) -> StateSnapshot:
        async with self._lock:
            return StateSnapshot(
                mode=self._content.mode,
                kind=self._content.kind,
                frame_count=len(self._content.frames),
                index=self._index,
                custom=self._content.custom,
                version=self._version,
                settings=self._settings,
            )
