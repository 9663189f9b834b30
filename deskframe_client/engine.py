"""Playback state machine.

The engine decides, one step at a time, what the device does next: check
the link, poll a single frame, download an animation, show the next
buffered frame, or wait out a backoff. ``step()`` performs one unit of
work and returns the next state together with how long to hold before
taking it. ``run()`` drives the steps and interrupts any of them when the
link monitor reports the link lost.

States:
- CONNECTING: check the link until it answers, then try a bulk fetch
- POLLING: fetch and show one frame, hold for its duration
- BULK_FETCHING: download an animation into the frame buffer
- LOCAL_PLAYBACK: cycle the frame buffer with no network traffic,
  re-checking the server once per cycle after the re-check interval
- ERROR_BACKOFF: wait an exponentially growing delay, then retry
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from deskframe.domain.models import DeviceSettings
from deskframe_client.backoff import backoff_delay
from deskframe_client.config import Config
from deskframe_client.exceptions import FetchError, LinkLossError
from deskframe_client.frame_buffer import FrameBuffer
from deskframe_client.link import LinkMonitor
from deskframe_client.renderer import FrameRenderer, rotate_180
from deskframe_client.wire import FrameResponse, SequenceResponse

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    CONNECTING = "connecting"
    POLLING = "polling"
    BULK_FETCHING = "bulk_fetching"
    LOCAL_PLAYBACK = "local_playback"
    ERROR_BACKOFF = "error_backoff"


# States that run while the link is down without being interrupted by it
_LINK_EXEMPT_STATES = frozenset({EngineState.CONNECTING, EngineState.ERROR_BACKOFF})


@dataclass(frozen=True)
class Transition:
    """Next state, and seconds to hold before entering it."""

    state: EngineState
    wait: float


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only view of the engine for the status beacon."""

    state: EngineState
    busy: bool
    last_outcome: Optional[str]
    link_up: bool
    settings: Optional[DeviceSettings]


class FrameSource(Protocol):
    async def fetch_frame(self) -> FrameResponse: ...

    async def fetch_sequence(self) -> SequenceResponse: ...


class Display(Protocol):
    def show(self, bitmap: bytes) -> None: ...


class PlaybackEngine:
    """Drives the display from the server's frames.

    Owns the frame buffer. Failures never tear an animation that is already
    playing, and link loss leaves the buffer intact so playback can resume
    once the server is back.
    """

    def __init__(
        self,
        config: Config,
        source: FrameSource,
        display: Display,
        link: Optional[LinkMonitor] = None,
        buffer: Optional[FrameBuffer] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.source = source
        self.display = display
        self.link = link
        self.buffer = buffer or FrameBuffer()
        self.renderer = FrameRenderer(config.display_width, config.display_height)
        self._clock = clock

        self.state = EngineState.CONNECTING
        self.settings: Optional[DeviceSettings] = None
        self.running = False

        # State consulted when a bulk fetch or a backoff completes
        self._resume_state = EngineState.POLLING
        self._backoff_resume = EngineState.CONNECTING

        self.consecutive_failures = 0
        self.backoff_attempt = 0
        self.play_index = 0
        self.cycles_played = 0
        self.has_rendered = False
        self._poll_hold = 0.0
        self._last_bulk_check: Optional[float] = None
        self._busy = False
        self._last_outcome: Optional[str] = None
        self._stop = asyncio.Event()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            state=self.state,
            busy=self._busy,
            last_outcome=self._last_outcome,
            link_up=self.link.is_up if self.link is not None else True,
            settings=self.settings,
        )

    # ------------------------------------------------------------------
    # Single step
    # ------------------------------------------------------------------

    async def step(self) -> Transition:
        """Perform the work of the current state and move to the next one."""
        handler = {
            EngineState.CONNECTING: self._step_connecting,
            EngineState.POLLING: self._step_polling,
            EngineState.BULK_FETCHING: self._step_bulk_fetching,
            EngineState.LOCAL_PLAYBACK: self._step_local_playback,
            EngineState.ERROR_BACKOFF: self._step_error_backoff,
        }[self.state]
        transition = await handler()
        if transition.state is not self.state:
            logger.debug(
                "%s -> %s (hold %.2fs)", self.state.value, transition.state.value, transition.wait
            )
        self.state = transition.state
        return transition

    async def _step_connecting(self) -> Transition:
        if self.link is not None and not await self._busy_call(self.link.check):
            return self._record_failure(EngineState.CONNECTING, "link check failed")

        logger.info("Connected to %s", self.config.backend_url)
        self._record_success()
        self._poll_hold = 0.0
        self._resume_state = (
            EngineState.LOCAL_PLAYBACK if not self.buffer.is_empty else EngineState.POLLING
        )
        return Transition(EngineState.BULK_FETCHING, 0.0)

    async def _step_polling(self) -> Transition:
        try:
            frame = await self._busy_call(self.source.fetch_frame)
        except FetchError as e:
            return self._record_failure(EngineState.POLLING, e)

        if frame.is_gif_mode:
            # Failure counters clear once the animation itself is fetched
            self._last_outcome = "success"
        else:
            self._record_success()
        self._apply_settings(frame.settings)
        self._present(self.renderer.render(frame.elements, clear=frame.clear))

        hold = (
            frame.duration_ms / 1000.0
            if frame.duration_ms is not None
            else self.config.poll_interval
        )
        self._poll_hold = max(self.config.min_poll_interval, hold)

        if frame.is_gif_mode:
            logger.info("Server reports an animation, fetching it")
            self._resume_state = EngineState.POLLING
            return Transition(EngineState.BULK_FETCHING, 0.0)
        return Transition(EngineState.POLLING, self._poll_hold)

    async def _step_bulk_fetching(self) -> Transition:
        previous = self._resume_state
        try:
            sequence = await self._busy_call(self.source.fetch_sequence)
        except FetchError as e:
            if previous is EngineState.LOCAL_PLAYBACK and not self.buffer.is_empty:
                # Keep playing; the check is retried after the next full cycle
                logger.warning("Playback re-check failed, continuing animation: %s", e)
                self._last_outcome = "error"
                return Transition(EngineState.LOCAL_PLAYBACK, 0.0)
            return self._record_failure(previous, e)

        self._record_success()
        self._last_bulk_check = self._clock()
        self._apply_settings(sequence.settings)

        if not sequence.has_animation:
            if not self.buffer.is_empty:
                logger.info("Animation ended on the server, returning to polling")
                self.buffer.clear()
            wait = 0.0 if previous is EngineState.LOCAL_PLAYBACK else self._poll_hold
            return Transition(EngineState.POLLING, wait)

        before = self.buffer.fingerprint()
        try:
            self.buffer.replace(sequence.frames)
        except ValueError as e:
            return self._record_failure(previous, e)
        if self.buffer.fingerprint() != before:
            logger.info("Loaded animation with %d frames", self.buffer.count)
            self.play_index = 0
            self.cycles_played = 0
        return Transition(EngineState.LOCAL_PLAYBACK, 0.0)

    async def _step_local_playback(self) -> Transition:
        if self.buffer.is_empty:
            return Transition(EngineState.POLLING, 0.0)

        index = self.play_index % self.buffer.count
        self._present(
            self.renderer.overlay(self.buffer.bitmap(index), clear=self.buffer.clear_flag(index))
        )
        hold = self.buffer.duration_ms(index) / 1000.0

        self.play_index = index + 1
        if self.play_index < self.buffer.count:
            return Transition(EngineState.LOCAL_PLAYBACK, hold)

        self.play_index = 0
        self.cycles_played += 1
        if self._recheck_due():
            self._resume_state = EngineState.LOCAL_PLAYBACK
            return Transition(EngineState.BULK_FETCHING, hold)
        return Transition(EngineState.LOCAL_PLAYBACK, hold)

    async def _step_error_backoff(self) -> Transition:
        self.backoff_attempt += 1
        delay = backoff_delay(
            self.backoff_attempt,
            base=self.config.backoff_base,
            factor=self.config.backoff_factor,
            ceiling=self.config.backoff_ceiling,
        )
        logger.info(
            "Backing off %.1fs (attempt %d) before retrying %s",
            delay,
            self.backoff_attempt,
            self._backoff_resume.value,
        )
        return Transition(self._backoff_resume, delay)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _busy_call(self, call: Callable[[], Awaitable[Any]]) -> Any:
        self._busy = True
        try:
            return await call()
        finally:
            self._busy = False

    def _recheck_due(self) -> bool:
        if self._last_bulk_check is None:
            return True
        return self._clock() - self._last_bulk_check >= self.config.playback_recheck_interval

    def _record_success(self) -> None:
        self.consecutive_failures = 0
        self.backoff_attempt = 0
        self._last_outcome = "success"

    def _record_failure(self, state: EngineState, error: object) -> Transition:
        self.consecutive_failures += 1
        self._last_outcome = "error"
        logger.warning(
            "%s failed (%d in a row): %s", state.value, self.consecutive_failures, error
        )

        if not self.has_rendered:
            self.display.show(self.renderer.render_message("NO CONNECTION", "RETRYING..."))

        if self.consecutive_failures >= self.config.failure_threshold:
            self._backoff_resume = state
            return Transition(EngineState.ERROR_BACKOFF, 0.0)

        if state is EngineState.POLLING:
            retry = self.config.poll_interval
        else:
            retry = self.config.backoff_base
        return Transition(state, retry)

    def _apply_settings(self, settings: Optional[DeviceSettings]) -> None:
        if settings is not None and settings != self.settings:
            logger.debug("Device settings updated: %s", settings.device_fields())
            self.settings = settings

    def _present(self, bitmap: bytes) -> None:
        if self.settings is not None and self.settings.display_rotation == 2:
            bitmap = rotate_180(bitmap, self.config.display_width, self.config.display_height)
        self.display.show(bitmap)
        self.has_rendered = True

    # ------------------------------------------------------------------
    # Driving loop
    # ------------------------------------------------------------------

    def on_link_lost(self, reason: object = "link down") -> Transition:
        """Abandon the current state and reconnect. The frame buffer is kept."""
        if (
            self.state is EngineState.ERROR_BACKOFF
            and self._backoff_resume is EngineState.CONNECTING
        ):
            # Already waiting out a delay before reconnecting
            return Transition(EngineState.ERROR_BACKOFF, 0.0)
        logger.warning("Link lost during %s (%s), reconnecting", self.state.value, reason)
        self._busy = False
        self.state = EngineState.CONNECTING
        return Transition(EngineState.CONNECTING, 0.0)

    async def _guarded(self, awaitable: Awaitable[Any]) -> Any:
        """Await ``awaitable`` unless the link drops or the engine is stopped first.

        Returns:
            The awaitable's result, or None if the engine was stopped

        Raises:
            LinkLossError: If the link dropped before ``awaitable`` finished
        """
        work = asyncio.ensure_future(awaitable)
        watchers = [asyncio.ensure_future(self._stop.wait())]
        if self.link is not None and self.state not in _LINK_EXEMPT_STATES:
            watchers.append(asyncio.ensure_future(self.link.wait_lost()))

        try:
            await asyncio.wait([work, *watchers], return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in watchers:
                task.cancel()

        if work.done():
            return work.result()

        work.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await work
        if self.running:
            raise LinkLossError(f"interrupted {self.state.value}")
        return None

    async def _run_once(self) -> None:
        if (
            self.link is not None
            and self.state not in _LINK_EXEMPT_STATES
            and not self.link.is_up
        ):
            raise LinkLossError("link reported down")

        try:
            transition = await self._guarded(self.step())
        except LinkLossError:
            raise
        except Exception:
            logger.exception("Unexpected error in %s step", self.state.value)
            transition = Transition(self.state, self.config.poll_interval)

        if self.running and transition is not None and transition.wait > 0:
            await self._guarded(asyncio.sleep(transition.wait))

    async def run(self) -> None:
        """Step until ``stop()`` is called."""
        self.running = True
        self._stop.clear()
        logger.info("Playback engine started")

        while self.running:
            try:
                await self._run_once()
            except LinkLossError as e:
                self.on_link_lost(e)

        logger.info("Playback engine stopped")

    def stop(self) -> None:
        self.running = False
        self._stop.set()
