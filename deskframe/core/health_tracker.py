"""Health tracking for the deskframe server."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any, Optional

# Producer heartbeat considered stale after this many seconds.
HEARTBEAT_STALE_SECONDS = 60


@dataclass
class HealthStatus:
    """Health status information for the server."""

    status: str  # "ok" or "degraded"
    uptime_seconds: int
    pid: int
    frame_count: int
    mode: str
    last_publish_age_seconds: Optional[int]
    background_tasks: list[dict[str, Any]]
    device_polls: int


class HealthTracker:
    """Tracks server liveness signals for the /api/health endpoint."""

    def __init__(self) -> None:
        self._start_time: float = time.time()
        self._last_publish: Optional[float] = None
        self._last_publish_kind: Optional[str] = None
        self._producer_heartbeat: Optional[float] = None
        self._producer_errors: int = 0
        self._device_polls: int = 0
        self._last_device_poll: Optional[float] = None

    def record_publish(self, kind: str) -> None:
        """Record that new content was swapped into the display state.

        Args:
            kind: Content kind ("upload", "marquee", "text", "rotation", ...)
        """
        self._last_publish = time.time()
        self._last_publish_kind = kind

    def record_producer_heartbeat(self) -> None:
        """Record that the producer rotation task completed a tick."""
        self._producer_heartbeat = time.time()

    def record_producer_error(self) -> None:
        """Record a producer that raised during a tick."""
        self._producer_errors += 1

    def record_device_poll(self) -> None:
        """Record a device fetch of a frame or sequence."""
        self._device_polls += 1
        self._last_device_poll = time.time()

    def get_uptime_seconds(self) -> int:
        """Get server uptime in seconds."""
        return int(time.time() - self._start_time)

    def get_last_publish_age_seconds(self) -> Optional[int]:
        """Seconds since content was last published, or None if never."""
        if self._last_publish is None:
            return None
        return int(time.time() - self._last_publish)

    def get_background_task_status(self) -> dict[str, Any]:
        """Get producer rotation task status.

        Returns:
            Dictionary with task status information
        """
        if self._producer_heartbeat is None:
            return {
                "name": "producer_rotation",
                "status": "unknown",
                "last_heartbeat_age_s": None,
                "errors": self._producer_errors,
            }

        heartbeat_age = int(time.time() - self._producer_heartbeat)
        status = "running" if heartbeat_age < HEARTBEAT_STALE_SECONDS else "stale"
        return {
            "name": "producer_rotation",
            "status": status,
            "last_heartbeat_age_s": heartbeat_age,
            "errors": self._producer_errors,
        }

    def determine_overall_status(self) -> str:
        """Determine overall health status.

        Returns:
            "ok" or "degraded"
        """
        if self._last_publish is None:
            return "degraded"  # Nothing has ever been published

        task = self.get_background_task_status()
        if task["status"] == "stale":
            return "degraded"

        return "ok"

    def get_health_status(self, frame_count: int, mode: str) -> HealthStatus:
        """Get comprehensive health status.

        Args:
            frame_count: Frames currently held by the display state
            mode: Current playback mode name

        Returns:
            HealthStatus object with all health information
        """
        return HealthStatus(
            status=self.determine_overall_status(),
            uptime_seconds=self.get_uptime_seconds(),
            pid=os.getpid(),
            frame_count=frame_count,
            mode=mode,
            last_publish_age_seconds=self.get_last_publish_age_seconds(),
            background_tasks=[self.get_background_task_status()],
            device_polls=self._device_polls,
        )

    @property
    def last_publish_kind(self) -> Optional[str]:
        return self._last_publish_kind
