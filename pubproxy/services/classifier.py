"""Map service responses onto the client's error kinds.

The service reports several conditions with a plain-text body and a status
code that varies between occurrences, so known messages are matched on the
text first and the status code only decides for unknown bodies.
"""

from __future__ import annotations

from pubproxy.errors import PubProxyError, QuotaExceededError, RateLimitedError, ServiceError
from pubproxy.integration.transport import RawResponse

# Fragments of the service's fixed error messages
_INVALID_API_KEY = "invalid api"
_RATE_LIMIT = "too fast"
_DAILY_LIMIT = "requests for today"
_NO_PROXY = "no proxy"


def classify_response(response: RawResponse) -> PubProxyError | None:
    """Return the error a response represents, or ``None`` if it is a success."""
    text = response.text.strip()
    lowered = text.lower()
    status = response.status

    if 200 <= status < 300 and text.startswith("{"):
        return None

    if _INVALID_API_KEY in lowered:
        return ServiceError(
            "The service rejected the API key",
            reason="invalid_api_key",
            status=status,
        )
    if _RATE_LIMIT in lowered:
        return RateLimitedError(status=status, body=text)
    if _DAILY_LIMIT in lowered and "maximum" in lowered:
        return QuotaExceededError(
            "The service reports the daily request limit is reached",
            status=status,
            remote=True,
        )
    if lowered == _NO_PROXY:
        return ServiceError(
            "No proxies match the options; consider broadening them",
            reason="no_proxy",
            status=status,
        )

    if 200 <= status < 300:
        return None
    if status == 429:
        return RateLimitedError(status=status, body=text[:200])
    if 400 <= status < 500:
        return ServiceError(
            f"Client error ({status}): {text[:200]}",
            reason="client",
            status=status,
        )
    if 500 <= status < 600:
        return ServiceError(
            f"Server error ({status}): {text[:200]}",
            reason="server",
            status=status,
        )
    return ServiceError(
        f"Unexpected status {status}",
        reason="unexpected_status",
        status=status,
    )
