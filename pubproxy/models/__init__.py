"""Public models for the pubproxy client."""

from pubproxy.models.options import Level, OptionsBuilder, Protocol, ProxyOptions
from pubproxy.models.proxy import ProxyRecord, Supports, decode_proxies

__all__ = [
    "Level",
    "OptionsBuilder",
    "Protocol",
    "ProxyOptions",
    "ProxyRecord",
    "Supports",
    "decode_proxies",
]
