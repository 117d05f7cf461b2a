"""
xGen Panel Monitor

Polls the panel status at a fixed interval, decodes the area arming mode and
the door zone from bankstates, and emits events when either changes. Each
change also fires a short pulse notification.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .pulse import PulseEvent, PulseNotifier
from .state import AreaMode

if TYPE_CHECKING:
    from .client import XGenClient

logger = logging.getLogger(__name__)

# Field names reported in ChangeEvent, and the pulse key each one fires
FIELD_AREA_MODE = "area_mode"
FIELD_DOOR_OPEN = "door_open"
PULSE_KEYS = {
    FIELD_AREA_MODE: "alarm",
    FIELD_DOOR_OPEN: "door",
}


class PollState(StrEnum):
    """Poll cycle state."""

    IDLE = "IDLE"
    POLLING = "POLLING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass
class ChangeEvent:
    """Event data for a level state change."""

    field: str
    old_value: Any
    new_value: Any


@dataclass(slots=True)
class ReconcilerSnapshot:
    """Last observed state, used for edge detection."""

    area_mode: AreaMode = AreaMode.UNKNOWN
    door_open: bool | None = None


class XGenMonitor:
    """
    Monitor class that wraps an XGenClient and emits change events.

    Events are delivered via callbacks registered with:
    - on_change(callback)
    - on_pulse(callback)
    - on_error(callback)
    - on_fault_changed(callback)

    Example:
        ```python
        monitor = XGenMonitor(client)
        monitor.on_change(lambda e: print(f"{e.field}: {e.old_value} -> {e.new_value}"))
        await monitor.start()
        ```
    """

    def __init__(self, client: XGenClient) -> None:
        """Initialize the monitor with an XGenClient."""
        self.client = client
        config = client.config

        self.area_index = config.area_index
        self.poll_interval = config.poll_interval
        self.door_zone = config.door_zone
        self.zone_open_bank = config.zone_open_bank
        self.zone_open_when_set = config.zone_open_when_set
        self.enable_event_notifications = config.enable_event_notifications

        self.pulses = PulseNotifier(config.pulse_duration)

        # Internal state
        self._snapshot = ReconcilerSnapshot()
        self._state = PollState.IDLE
        self._faulted = False
        self._running = False
        self._poll_task: asyncio.Task[None] | None = None
        # Held for a whole cycle so poll_once callers never overlap the loop
        self._poll_lock = asyncio.Lock()

        # Event callbacks
        self._on_change: list[Callable[[ChangeEvent], Coroutine[Any, Any, None] | None]] = []
        self._on_error: list[Callable[[Exception], Coroutine[Any, Any, None] | None]] = []
        self._on_fault_changed: list[Callable[[bool], Coroutine[Any, Any, None] | None]] = []

    @property
    def running(self) -> bool:
        """Check if the monitor is running."""
        return self._running

    @property
    def state(self) -> PollState:
        """Current poll cycle state."""
        return self._state

    @property
    def faulted(self) -> bool:
        """Whether the last poll cycle failed."""
        return self._faulted

    @property
    def snapshot(self) -> ReconcilerSnapshot:
        """Copy of the last observed state."""
        return replace(self._snapshot)

    @property
    def has_door(self) -> bool:
        """Whether a door zone is configured."""
        return self.door_zone > 0

    def on_change(
        self, callback: Callable[[ChangeEvent], Coroutine[Any, Any, None] | None]
    ) -> None:
        """Register a callback for level state changes."""
        self._on_change.append(callback)

    def on_pulse(
        self, callback: Callable[[PulseEvent], Coroutine[Any, Any, None] | None]
    ) -> None:
        """Register a callback for pulse activation and reset."""
        self.pulses.on_pulse(callback)

    def on_error(
        self, callback: Callable[[Exception], Coroutine[Any, Any, None] | None]
    ) -> None:
        """Register a callback for failed poll cycles."""
        self._on_error.append(callback)

    def on_fault_changed(
        self, callback: Callable[[bool], Coroutine[Any, Any, None] | None]
    ) -> None:
        """Register a callback for fault indicator changes."""
        self._on_fault_changed.append(callback)

    async def _emit(self, callbacks: list[Callable], event: Any) -> None:
        """Emit an event to all registered callbacks."""
        for callback in callbacks:
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Error in event callback: {e}")

    async def start(self) -> None:
        """Start monitoring. Runs one poll cycle, then polls in the background."""
        if self._running:
            raise RuntimeError("Monitor is already running")

        logger.debug("Starting monitor...")
        self._running = True
        await self.poll_once()
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.debug("Monitor started successfully")

    async def stop(self) -> None:
        """Stop monitoring and cancel pending pulse resets."""
        logger.debug("Stopping monitor...")
        self._running = False
        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await self.pulses.cancel_all()
        logger.debug("Monitor stopped")

    async def _poll_loop(self) -> None:
        """Sleep, poll, repeat. The next sleep starts only after a cycle settles."""
        while self._running:
            await asyncio.sleep(self.poll_interval)
            if not self._running:
                break
            await self.poll_once()

    async def poll_once(self) -> bool:
        """
        Run a single poll cycle.

        Cycles are serialised: a call made while another cycle is running
        waits for it to finish first.

        Returns:
            True if the cycle succeeded, False if it failed
        """
        async with self._poll_lock:
            return await self._poll_cycle()

    async def _poll_cycle(self) -> bool:
        self._state = PollState.POLLING
        try:
            status = await self.client.status(self.area_index)
            mode = status.area_mode
            door_open = (
                status.is_zone_open(
                    self.door_zone, self.zone_open_bank, self.zone_open_when_set
                )
                if self.has_door
                else None
            )
        except Exception as err:
            self._state = PollState.FAILED
            await self._handle_failure(err)
            self._state = PollState.IDLE
            return False

        self._state = PollState.SUCCESS
        await self._set_fault(False)
        await self._reconcile(FIELD_AREA_MODE, mode)
        if self.has_door:
            await self._reconcile(FIELD_DOOR_OPEN, door_open)
        self._state = PollState.IDLE
        return True

    async def _handle_failure(self, err: Exception) -> None:
        logger.warning(f"Poll error: {err}")
        # Force re-login next time
        self.client.invalidate_session()
        await self._emit(self._on_error, err)
        await self._set_fault(True)

    async def _set_fault(self, faulted: bool) -> None:
        if self._faulted == faulted:
            return
        self._faulted = faulted
        await self._emit(self._on_fault_changed, faulted)

    async def _reconcile(self, field_name: str, new_value: Any) -> None:
        """Compare one field with the snapshot; on change update it and notify."""
        old_value = getattr(self._snapshot, field_name)
        if old_value == new_value:
            return

        setattr(self._snapshot, field_name, new_value)

        if field_name == FIELD_AREA_MODE:
            logger.info(f"MODE CHANGED => {new_value}")
        else:
            logger.info(f"Door zone {self.door_zone} => {'OPEN' if new_value else 'CLOSED'}")

        await self._emit(self._on_change, ChangeEvent(field_name, old_value, new_value))

        if self.enable_event_notifications:
            self.pulses.pulse(PULSE_KEYS[field_name])
