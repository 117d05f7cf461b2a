"""
Momentary "pulse" notifications.

A pulse sets a named signal active and resets it after a fixed duration.
Pulsing a key again before its reset fires restarts the timer instead of
scheduling a second reset.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

PulseCallback = Callable[["PulseEvent"], Coroutine[Any, Any, None] | None]


@dataclass(slots=True)
class PulseEvent:
    """Activation or reset of a pulse signal."""

    key: str
    active: bool


class PulseNotifier:
    """
    Registry of per-key reset timers.

    Example:
        ```python
        notifier = PulseNotifier(1.5)
        notifier.on_pulse(lambda e: print(e.key, e.active))
        notifier.pulse("alarm")
        ```
    """

    def __init__(self, duration: float) -> None:
        """
        Initialize the notifier.

        Args:
            duration: Seconds a pulse stays active
        """
        self.duration = duration
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._active: set[str] = set()
        self._callbacks: list[PulseCallback] = []
        self._callback_tasks: set[asyncio.Task[None]] = set()

    def on_pulse(self, callback: PulseCallback) -> None:
        """Register a callback for pulse activation and reset events."""
        self._callbacks.append(callback)

    @property
    def pending(self) -> list[str]:
        """Keys with a reset still scheduled."""
        return list(self._timers)

    def is_active(self, key: str) -> bool:
        """Whether the signal for key is currently active."""
        return key in self._active

    def pulse(self, key: str) -> None:
        """
        Activate the signal for key and (re)schedule its reset.

        Must be called from within a running event loop.
        """
        previous = self._timers.pop(key, None)
        if previous is not None:
            previous.cancel()
            logger.debug(f"Pulse '{key}' re-triggered, restarting reset timer")

        self._active.add(key)
        self._timers[key] = asyncio.create_task(self._reset_later(key))
        self._notify(PulseEvent(key=key, active=True))

    async def cancel_all(self) -> None:
        """Cancel every pending reset and emit the reset of each active key now."""
        timers = list(self._timers.values())
        active = sorted(self._active)
        self._timers.clear()
        self._active.clear()
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        for key in active:
            self._notify(PulseEvent(key=key, active=False))
        if self._callback_tasks:
            await asyncio.gather(*list(self._callback_tasks), return_exceptions=True)

    async def _reset_later(self, key: str) -> None:
        await asyncio.sleep(self.duration)
        if self._timers.get(key) is asyncio.current_task():
            del self._timers[key]
        self._active.discard(key)
        self._notify(PulseEvent(key=key, active=False))

    def _notify(self, event: PulseEvent) -> None:
        for callback in self._callbacks:
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    task = asyncio.create_task(self._await_callback(result))
                    self._callback_tasks.add(task)
                    task.add_done_callback(self._callback_tasks.discard)
            except Exception as e:
                logger.error(f"Error in pulse callback: {e}")

    async def _await_callback(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            await coro
        except Exception as e:
            logger.error(f"Error in pulse callback: {e}")
