"""Rate-governed client for the pubproxy.com proxy listing API.

Usage::

    from pubproxy import Protocol, ProxyOptions, Session

    options = ProxyOptions.builder().protocol(Protocol.SOCKS5).country("US").build()
    with Session() as session:
        proxies = session.fetcher(options).fetch(10)
"""

from pubproxy.config.settings import PubProxySettings
from pubproxy.config.tiers import KEYLESS, PREMIUM, Tier
from pubproxy.errors import (
    ConfigurationError,
    InvalidRequestError,
    PubProxyError,
    QuotaExceededError,
    RateLimitedError,
    ServiceError,
    TransportError,
)
from pubproxy.models.options import Level, OptionsBuilder, Protocol, ProxyOptions
from pubproxy.models.proxy import ProxyRecord, Supports
from pubproxy.resilience.rate_governor import RateGovernor, Reservation, shared_governor
from pubproxy.services.fetcher import AsyncProxyFetcher, ProxyFetcher, Session

__all__ = [
    "KEYLESS",
    "PREMIUM",
    "AsyncProxyFetcher",
    "ConfigurationError",
    "InvalidRequestError",
    "Level",
    "OptionsBuilder",
    "Protocol",
    "ProxyFetcher",
    "ProxyOptions",
    "ProxyRecord",
    "PubProxyError",
    "PubProxySettings",
    "QuotaExceededError",
    "RateGovernor",
    "RateLimitedError",
    "Reservation",
    "ServiceError",
    "Session",
    "Supports",
    "Tier",
    "TransportError",
    "shared_governor",
]
__version__ = "1.0.0"
