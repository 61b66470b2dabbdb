"""Clock collaborators for the rate governor.

The governor never reads time or sleeps directly. It asks a clock, so tests
can drive waits and day boundaries deterministically with ``ManualClock``.
"""

from __future__ import annotations

import asyncio
import threading
import time
from datetime import date, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of time and of waiting for the rate governor."""

    def monotonic(self) -> float:
        """Seconds on a clock that never goes backwards."""
        ...

    def today(self) -> date:
        """The local calendar day, used for the daily quota reset."""
        ...

    def wait(self, condition: threading.Condition, timeout: float | None) -> None:
        """Block on ``condition`` (held by the caller) for at most ``timeout`` seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class SystemClock:
    """Real time: ``time.monotonic``, the local date and real sleeping."""

    def monotonic(self) -> float:
        return time.monotonic()

    def today(self) -> date:
        return date.today()

    def wait(self, condition: threading.Condition, timeout: float | None) -> None:
        condition.wait(timeout)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class ManualClock:
    """Deterministic clock for tests.

    Time only moves on ``advance()`` or when a waiter waits with a timeout, in
    which case the clock jumps forward by that timeout instead of sleeping.
    Untimed waits still block on the condition until another thread notifies.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._start = start or datetime(2024, 1, 1, 12, 0, 0)
        self._elapsed = 0.0
        self._lock = threading.Lock()

    def monotonic(self) -> float:
        with self._lock:
            return self._elapsed

    def now(self) -> datetime:
        with self._lock:
            return self._start + timedelta(seconds=self._elapsed)

    def today(self) -> date:
        return self.now().date()

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("a clock cannot go backwards")
        with self._lock:
            self._elapsed += seconds

    def wait(self, condition: threading.Condition, timeout: float | None) -> None:
        if timeout is None:
            condition.wait()
        else:
            self.advance(max(timeout, 0.0))

    async def sleep(self, seconds: float) -> None:
        self.advance(max(seconds, 0.0))
        # Still yield so other tasks get a turn
        await asyncio.sleep(0)
