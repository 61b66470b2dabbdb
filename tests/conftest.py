"""Shared test fixtures for the pubproxy test suite."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path

import pytest

from pubproxy.config.tiers import KEYLESS, PREMIUM
from pubproxy.integration.transport import RawResponse
from pubproxy.resilience import rate_governor
from pubproxy.resilience.clock import ManualClock
from pubproxy.resilience.rate_governor import RateGovernor

SAMPLES_DIR = Path(__file__).parent / "samples"


# ---------------------------------------------------------------------------
# Isolation: no PUBPROXY_* env leaks in, no governor leaks between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_pubproxy_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("PUBPROXY_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def _fresh_shared_governors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(rate_governor, "_SHARED", {})


# ---------------------------------------------------------------------------
# Clock and governors
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def keyless_governor(clock: ManualClock) -> RateGovernor:
    return RateGovernor(KEYLESS, clock)


@pytest.fixture
def premium_governor(clock: ManualClock) -> RateGovernor:
    return RateGovernor(PREMIUM, clock)


# ---------------------------------------------------------------------------
# Service payloads
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_body() -> str:
    """A real-shaped response with five entries, one without a country."""
    return (SAMPLES_DIR / "response.json").read_text(encoding="utf-8")


def _proxy_entry(
    ip: str = "1.2.3.4",
    port: int = 8080,
    protocol: str = "http",
    country: str = "US",
    level: str = "elite",
    speed: str = "3",
) -> dict:
    return {
        "ipPort": f"{ip}:{port}",
        "ip": ip,
        "port": str(port),
        "country": country,
        "last_checked": "2024-01-01 11:58:00",
        "proxy_level": level,
        "type": protocol,
        "speed": speed,
        "support": {
            "https": 1,
            "get": 1,
            "post": 1,
            "cookies": 0,
            "referer": 1,
            "user_agent": 1,
            "google": None,
        },
    }


@pytest.fixture
def proxy_entry() -> Callable[..., dict]:
    """Factory for one raw proxy entry as the service returns it."""
    return _proxy_entry


@pytest.fixture
def proxy_body() -> Callable[..., str]:
    """Factory for a success body holding the given entries (or ``n`` generated ones)."""

    def _body(*entries: dict, n: int | None = None) -> str:
        data = list(entries)
        if n is not None:
            data.extend(_proxy_entry(ip=f"10.0.0.{i + 1}", port=3128 + i) for i in range(n))
        return json.dumps({"data": data, "count": len(data)})

    return _body


# ---------------------------------------------------------------------------
# Transport stubs
# ---------------------------------------------------------------------------

class StubTransport:
    """Replays canned responses in order and records every query it receives.

    An exception in the script is raised instead of returned. The last item
    repeats once the script runs out.
    """

    def __init__(self, script: list[RawResponse | Exception], clock=None) -> None:
        self._script = list(script)
        self._clock = clock
        self.calls: list[dict[str, str]] = []
        self.call_times: list[float] = []

    def _next(self, params: dict[str, str]) -> RawResponse:
        self.calls.append(dict(params))
        if self._clock is not None:
            self.call_times.append(self._clock.monotonic())
        item = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, params: dict[str, str]) -> RawResponse:
        return self._next(params)


class AsyncStubTransport(StubTransport):
    async def get(self, params: dict[str, str]) -> RawResponse:  # type: ignore[override]
        return self._next(params)


@pytest.fixture
def stub_transport() -> type[StubTransport]:
    return StubTransport


@pytest.fixture
def async_stub_transport() -> type[AsyncStubTransport]:
    return AsyncStubTransport
