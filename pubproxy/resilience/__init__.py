"""Rate limiting components for the pubproxy client."""

from pubproxy.resilience.batch_planner import plan
from pubproxy.resilience.clock import Clock, ManualClock, SystemClock
from pubproxy.resilience.rate_governor import RateGovernor, Reservation, shared_governor

__all__ = [
    "Clock",
    "ManualClock",
    "RateGovernor",
    "Reservation",
    "SystemClock",
    "plan",
    "shared_governor",
]
