"""Process-wide request governor for one access tier.

Tracks two things for every request sent to the service: the earliest instant
the next request may leave, and how many requests are left today. Callers
obtain permission through ``reserve()`` (blocking, for threads) or
``areserve()`` (for asyncio tasks). Both share one state block and one FIFO
queue of waiters, guarded by a single condition variable.

Key behaviors:
- At most one slot is granted per ``min_interval_seconds`` window, globally
- Waiters are served in arrival order; only the head of the queue waits on
  the clock, the others sleep until the head leaves
- An exhausted daily quota fails immediately with ``QuotaExceededError``
  and leaves the next-request instant untouched
- The quota resets when the clock's local date changes, inside the same
  critical section as the quota check
- A waiter that gives up before being granted (cancellation, timeout in the
  caller) consumes nothing

Rate state lives only in this process. Other programs using the service from
the same IP address are invisible to it, which is why the service may still
answer with a rate-limit error; see ``penalize()`` and ``exhaust()``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from pubproxy.config.tiers import Tier
from pubproxy.errors import QuotaExceededError
from pubproxy.resilience.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    """Permission to send exactly one request."""

    sequence: int  # 1-based count of slots granted by this governor
    granted_at: float  # clock.monotonic() at grant time
    remaining: int | None  # requests left today after this one; None = unlimited


@dataclass(eq=False)
class _Waiter:
    wake: Callable[[], None]


class RateGovernor:
    """Serializes access to the service's request slots for one tier.

    Args:
        tier: Limits to enforce.
        clock: Time source; defaults to the system clock.
    """

    def __init__(self, tier: Tier, clock: Clock | None = None) -> None:
        self._tier = tier
        self._clock: Clock = clock or SystemClock()
        self._cond = threading.Condition(threading.Lock())
        self._waiters: deque[_Waiter] = deque()

        # Initialized lazily on first use
        self._day: date | None = None
        self._remaining: int | None = None
        self._next_allowed = 0.0
        self._granted = 0

    @property
    def tier(self) -> Tier:
        return self._tier

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------
    # Reservation
    # ------------------------------------------------------------------

    def reserve(self) -> Reservation:
        """Block until a slot is granted.

        Raises
        ------
        QuotaExceededError
            If no requests are left today. Raised without waiting.
        """
        waiter = _Waiter(wake=self._cond.notify_all)
        with self._cond:
            self._waiters.append(waiter)
            try:
                while True:
                    reservation, delay = self._poll(waiter)
                    if reservation is not None:
                        return reservation
                    self._clock.wait(self._cond, delay)
            finally:
                self._leave(waiter)

    async def areserve(self) -> Reservation:
        """Await a slot; same semantics as ``reserve()``.

        Cancelling the awaiting task releases its place in the queue without
        touching the quota or the next-request instant.
        """
        loop = asyncio.get_running_loop()
        woken = asyncio.Event()
        waiter = _Waiter(wake=lambda: loop.call_soon_threadsafe(woken.set))

        with self._cond:
            self._waiters.append(waiter)
        try:
            while True:
                with self._cond:
                    woken.clear()
                    reservation, delay = self._poll(waiter)
                if reservation is not None:
                    return reservation
                if delay is None:
                    await woken.wait()
                else:
                    await self._clock.sleep(delay)
        finally:
            with self._cond:
                self._leave(waiter)

    def _poll(self, waiter: _Waiter) -> tuple[Reservation | None, float | None]:
        """Try to grant ``waiter`` a slot. Caller holds the lock.

        Returns the reservation, or ``(None, delay)`` where ``delay`` is how
        long the head of the queue must wait and ``None`` means "wait to be
        woken".
        """
        now = self._clock.monotonic()
        self._roll_day(now)

        if self._remaining == 0:
            logger.warning(
                "Daily quota of %s requests exhausted for tier %s",
                self._tier.daily_limit,
                self._tier.name,
                extra={"tier": self._tier.name, "remaining": 0},
            )
            raise QuotaExceededError(
                f"All {self._tier.daily_limit} requests for today have been used",
                tier=self._tier.name,
                daily_limit=self._tier.daily_limit,
            )

        if self._waiters[0] is not waiter:
            return None, None

        delay = self._next_allowed - now
        if delay > 0:
            logger.debug(
                "Waiting %.3fs for the next request slot",
                delay,
                extra={"tier": self._tier.name, "wait_seconds": round(delay, 3)},
            )
            return None, delay

        if self._remaining is not None:
            self._remaining -= 1
        self._next_allowed = now + self._tier.min_interval_seconds
        self._granted += 1
        return Reservation(self._granted, now, self._remaining), None

    def _leave(self, waiter: _Waiter) -> None:
        """Drop ``waiter`` from the queue and wake the new head. Caller holds the lock."""
        was_head = bool(self._waiters) and self._waiters[0] is waiter
        try:
            self._waiters.remove(waiter)
        except ValueError:
            return
        if was_head and self._waiters:
            self._waiters[0].wake()

    def _roll_day(self, now: float) -> None:
        """Reset the quota when the local day changes. Caller holds the lock."""
        today = self._clock.today()
        if self._day is None:
            self._next_allowed = now
        if self._day != today:
            if self._day is not None:
                logger.info(
                    "New day, quota reset to %s requests",
                    self._tier.daily_limit,
                    extra={"tier": self._tier.name, "remaining": self._tier.daily_limit},
                )
            self._day = today
            self._remaining = self._tier.daily_limit

    # ------------------------------------------------------------------
    # Feedback from the service
    # ------------------------------------------------------------------

    def exhaust(self) -> None:
        """Mark today's quota as spent.

        Used when the service reports the daily limit before local
        bookkeeping did, so later calls fail without a round trip.
        """
        with self._cond:
            self._roll_day(self._clock.monotonic())
            self._remaining = 0
            if self._waiters:
                self._waiters[0].wake()

    def penalize(self, seconds: float) -> None:
        """Push the next slot at least ``seconds`` into the future."""
        with self._cond:
            now = self._clock.monotonic()
            self._roll_day(now)
            self._next_allowed = max(self._next_allowed, now + seconds)
        logger.warning(
            "Backing off %.1fs after the service reported throttling",
            seconds,
            extra={"tier": self._tier.name, "wait_seconds": seconds},
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def remaining(self) -> int | None:
        """Requests left today, or ``None`` when the tier is unlimited.

        A snapshot only: ``reserve()`` remains the authority.
        """
        with self._cond:
            self._roll_day(self._clock.monotonic())
            return self._remaining

    def stats(self) -> dict:
        """Return governor statistics."""
        with self._cond:
            now = self._clock.monotonic()
            self._roll_day(now)
            return {
                "tier": self._tier.name,
                "remaining": self._remaining,
                "granted": self._granted,
                "seconds_until_next_slot": max(self._next_allowed - now, 0.0),
                "waiters": len(self._waiters),
            }


# One governor per tier per process. Fetchers receive it explicitly; this
# registry only guarantees that everyone asking for a tier gets the same one.
_SHARED: dict[str, RateGovernor] = {}
_SHARED_LOCK = threading.Lock()


def shared_governor(tier: Tier, clock: Clock | None = None) -> RateGovernor:
    """Return the process-wide governor for ``tier``, creating it on first use.

    ``clock`` only applies when the governor is created. If a governor for the
    tier's name already exists with different limits, the existing one wins.
    """
    with _SHARED_LOCK:
        governor = _SHARED.get(tier.name)
        if governor is None:
            governor = RateGovernor(tier, clock)
            _SHARED[tier.name] = governor
        elif governor.tier != tier:
            logger.warning(
                "Governor for tier %s already exists with other limits, reusing it",
                tier.name,
                extra={"tier": tier.name},
            )
        return governor
