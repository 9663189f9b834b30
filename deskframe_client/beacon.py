"""Status beacon (the device's RGB LED).

A thin consumer of engine state: it reads a snapshot, maps it to a signal,
and resolves the colour and effect from the device settings the server
sent. It never influences playback.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from deskframe.domain.models import DeviceSettings
from deskframe_client.engine import EngineSnapshot, EngineState

logger = logging.getLogger(__name__)

Color = tuple[int, int, int]


class BeaconSignal(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCESS = "success"
    ERROR = "error"
    ANIMATING = "animating"
    LINK_RETRY = "link_retry"


# Colour and effect for each signal when the effect mode is "auto"
AUTO_SIGNALS: dict[BeaconSignal, tuple[Color, str]] = {
    BeaconSignal.IDLE: ((0, 0, 0), "off"),
    BeaconSignal.FETCHING: ((0, 100, 255), "pulse"),
    BeaconSignal.SUCCESS: ((0, 255, 0), "static"),
    BeaconSignal.ERROR: ((255, 0, 0), "flash"),
    BeaconSignal.ANIMATING: ((160, 0, 255), "rainbow"),
    BeaconSignal.LINK_RETRY: ((255, 160, 0), "flash"),
}


@dataclass(frozen=True)
class BeaconState:
    """What the LED should show."""

    signal: BeaconSignal
    color: Color
    brightness: int  # 0-255
    effect: str  # off, static, flash, pulse, rainbow
    period_ms: int = 0


def signal_for(snapshot: EngineSnapshot) -> BeaconSignal:
    """Map an engine snapshot to a beacon signal."""
    if snapshot.state is EngineState.CONNECTING:
        return BeaconSignal.LINK_RETRY
    if snapshot.state is EngineState.ERROR_BACKOFF:
        return BeaconSignal.ERROR
    if snapshot.busy or snapshot.state is EngineState.BULK_FETCHING:
        return BeaconSignal.FETCHING
    if snapshot.state is EngineState.LOCAL_PLAYBACK:
        return BeaconSignal.ANIMATING
    if snapshot.last_outcome == "error":
        return BeaconSignal.ERROR
    if snapshot.last_outcome == "success":
        return BeaconSignal.SUCCESS
    return BeaconSignal.IDLE


def parse_color(value: str) -> Color:
    """"#RRGGBB" to an (r, g, b) tuple."""
    value = value.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def beacon_state(signal: BeaconSignal, settings: Optional[DeviceSettings] = None) -> BeaconState:
    """Resolve the LED output for ``signal`` under ``settings``."""
    settings = settings or DeviceSettings()
    if not settings.led_beacon_enabled:
        return BeaconState(signal=signal, color=(0, 0, 0), brightness=0, effect="off")

    if settings.led_effect_mode == "auto":
        color, effect = AUTO_SIGNALS[signal]
    else:
        color, effect = parse_color(settings.led_custom_color), settings.led_effect_mode

    if effect == "flash":
        period = settings.led_flash_speed
    elif effect == "pulse":
        period = settings.led_pulse_speed
    else:
        period = 0

    brightness = 0 if effect == "off" else round(255 * settings.led_brightness / 100)
    return BeaconState(
        signal=signal, color=color, brightness=brightness, effect=effect, period_ms=period
    )


class BeaconOutput:
    """Destination for beacon states. The default just logs changes."""

    def __init__(self) -> None:
        self.last: Optional[BeaconState] = None

    def show(self, state: BeaconState) -> None:
        if state != self.last:
            logger.debug(
                "Beacon: %s %s rgb%s brightness %d",
                state.signal.value,
                state.effect,
                state.color,
                state.brightness,
            )
        self.last = state


class BeaconMonitor:
    """Periodically publishes the engine's status to beacon outputs."""

    def __init__(
        self,
        source: Callable[[], EngineSnapshot],
        outputs: Iterable[BeaconOutput],
        interval: float = 0.1,
    ):
        self.source = source
        self.outputs = list(outputs)
        self.interval = interval
        self.current: Optional[BeaconState] = None

    def tick(self) -> BeaconState:
        snapshot = self.source()
        state = beacon_state(signal_for(snapshot), snapshot.settings)
        for output in self.outputs:
            try:
                output.show(state)
            except Exception:
                logger.exception("Beacon output %s failed", type(output).__name__)
        self.current = state
        return state

    async def run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            self.tick()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
