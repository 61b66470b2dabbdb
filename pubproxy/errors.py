"""Error hierarchy for the pubproxy client.

Every failure surfaced by ``fetch`` is a ``PubProxyError`` subclass. The six
kinds are disjoint and carry different recovery semantics:

- ``ConfigurationError``: invalid options, detected before any network activity
- ``InvalidRequestError``: local misuse such as a non-positive proxy count
- ``QuotaExceededError``: the day's request quota is spent, do not retry soon
- ``RateLimitedError``: the service throttled us despite local pacing
- ``TransportError``: network or connection failure, retryable
- ``ServiceError``: malformed or error response from the service
"""

from __future__ import annotations


class PubProxyError(Exception):
    """Base error for all pubproxy client errors."""

    message: str = "pubproxy client error"
    retryable: bool = False

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        """Stable name of the error kind, used in logs and the CLI."""
        return self.__class__.__name__


class ConfigurationError(PubProxyError):
    """Options failed validation; includes field-level details."""

    message = "Invalid proxy options"


class InvalidRequestError(PubProxyError):
    """The caller asked for something the client cannot do."""

    message = "Invalid fetch request"


class QuotaExceededError(PubProxyError):
    """The daily request quota is exhausted."""

    message = "Daily request quota exhausted"


class RateLimitedError(PubProxyError):
    """The service reports requests are arriving too fast.

    Local pacing should prevent this, so it usually means another program is
    using the API from the same IP address.
    """

    message = (
        "Rate limited by the service; another program may be using the API "
        "from the same address"
    )
    retryable = True


class TransportError(PubProxyError):
    """The request never produced an HTTP response."""

    message = "Could not reach the proxy service"
    retryable = True


class ServiceError(PubProxyError):
    """The service answered with an error or a body we cannot decode."""

    message = "Unexpected response from the proxy service"

    def __init__(
        self,
        message: str | None = None,
        *,
        reason: str = "unexpected",
        status: int | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(message, reason=reason, status=status, **kwargs)
        self.reason = reason
        self.status = status
