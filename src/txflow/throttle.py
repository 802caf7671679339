"""
Trailing-edge throttle for continuous updates (slider-style config changes).

At most one commit per window. A submit while the window is open commits
immediately; submits inside the window only replace the pending value, and a
single trailing commit at the end of the window delivers the latest one, so
the final value is always committed.

The trailing commit is scheduled on the running asyncio loop. Outside a loop
the latest value stays pending until ``flush()`` or the next submit that
lands after the window.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Generic, TypeVar

from loguru import logger

from txflow.constants import THROTTLE_WINDOW

T = TypeVar("T")

_NOTHING = object()


class Throttle(Generic[T]):
    def __init__(
        self,
        commit: Callable[[T], None],
        window: float = THROTTLE_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        if window < 0:
            raise ValueError("window must be >= 0")
        self.window = window
        self._commit = commit
        self._clock = clock
        self._pending: object = _NOTHING
        self._last_commit = float("-inf")
        self._timer: asyncio.TimerHandle | None = None
        self.commits = 0

    @property
    def has_pending(self) -> bool:
        return self._pending is not _NOTHING

    @property
    def pending(self) -> T | None:
        return None if self._pending is _NOTHING else self._pending  # type: ignore[return-value]

    def submit(self, value: T) -> None:
        self._pending = value
        if self._timer is not None:
            return

        elapsed = self._clock() - self._last_commit
        if elapsed >= self.window:
            self._fire()
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to schedule on: the value waits for flush() or the next
            # submit after the window
            logger.debug("Throttle has no running loop, holding value until flushed")
            return
        self._timer = loop.call_later(self.window - elapsed, self._on_timer)

    def flush(self) -> None:
        """Commit the pending value now, if any."""
        self._cancel_timer()
        self._fire()

    def cancel(self) -> None:
        """Drop the pending value without committing."""
        self._cancel_timer()
        self._pending = _NOTHING

    def _on_timer(self) -> None:
        self._timer = None
        self._fire()

    def _fire(self) -> None:
        if self._pending is _NOTHING:
            return
        value = self._pending
        self._pending = _NOTHING
        self._last_commit = self._clock()
        self.commits += 1
        try:
            self._commit(value)  # type: ignore[arg-type]
        except Exception as e:
            logger.error(f"Throttled commit failed: {e}")
            raise

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
