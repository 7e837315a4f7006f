from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class TickTimer:
    """Fixed-period tick source driven by an injected Clock.

    The timer only reports due ticks; the owner decides what a tick means.
    ``start`` always discards any pending ticks from a previous run so two
    countdowns can never overlap.
    """

    def __init__(self, *, clock: Clock, period_s: float) -> None:
        if period_s <= 0.0:
            raise ValueError("period_s must be > 0")
        self._clock = clock
        self._period_s = float(period_s)
        self._running = False
        self._next_due_s = 0.0
        self._starts = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def starts(self) -> int:
        """Number of times the timer has been (re)started."""
        return self._starts

    def start(self) -> None:
        self._running = True
        self._next_due_s = self._clock.now() + self._period_s
        self._starts += 1

    def stop(self) -> None:
        self._running = False

    def consume(self) -> bool:
        """Return True and schedule the next tick if one tick is due."""

        if not self._running:
            return False
        if self._clock.now() < self._next_due_s:
            return False
        self._next_due_s += self._period_s
        return True
