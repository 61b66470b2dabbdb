"""HTTP integration with the pubproxy service."""

from pubproxy.integration.transport import (
    AsyncHttpTransport,
    AsyncTransport,
    HttpTransport,
    RawResponse,
    Transport,
)

__all__ = [
    "AsyncHttpTransport",
    "AsyncTransport",
    "HttpTransport",
    "RawResponse",
    "Transport",
]
