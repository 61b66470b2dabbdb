"""Rate-governed proxy fetching.

A fetcher is bound to one ``ProxyOptions`` value and holds an explicit
reference to the tier's shared ``RateGovernor``. ``fetch(n)`` plans the
fewest requests able to return ``n`` proxies, then for each chunk, strictly
one after another: reserve a slot, send the request, classify the response
and decode it.

Failure policy:
- The first error aborts the call; proxies gathered by earlier chunks of
  the same call are discarded, never returned partially
- Nothing is retried here; retrying into a throttled service extends the
  penalty, so the decision is left to the caller
- A throttling response pushes the governor's next slot back; a daily-limit
  response marks the local quota as spent
"""

from __future__ import annotations

import logging

from pubproxy.config.settings import PubProxySettings
from pubproxy.errors import (
    InvalidRequestError,
    PubProxyError,
    QuotaExceededError,
    RateLimitedError,
)
from pubproxy.integration.transport import (
    AsyncHttpTransport,
    AsyncTransport,
    HttpTransport,
    RawResponse,
    Transport,
)
from pubproxy.models.options import ProxyOptions
from pubproxy.models.proxy import ProxyRecord, decode_proxies
from pubproxy.resilience.batch_planner import plan
from pubproxy.resilience.clock import Clock
from pubproxy.resilience.rate_governor import RateGovernor, shared_governor
from pubproxy.services.classifier import classify_response

logger = logging.getLogger(__name__)

# Floor for the back-off applied after the service reports throttling
_MIN_THROTTLE_BACKOFF_SECONDS = 1.0


class _FetcherBase:
    def __init__(
        self,
        options: ProxyOptions,
        governor: RateGovernor,
        *,
        api_key: str | None = None,
    ) -> None:
        self._options = options
        self._governor = governor
        self._api_key = api_key

    @property
    def options(self) -> ProxyOptions:
        return self._options

    @property
    def governor(self) -> RateGovernor:
        return self._governor

    def _plan(self, desired_count: int) -> list[int]:
        """Validate the count and split it into chunks.

        Uses a snapshot of the quota; the governor may still refuse a later
        reservation if other callers got there first.
        """
        if isinstance(desired_count, bool) or not isinstance(desired_count, int) or desired_count <= 0:
            raise InvalidRequestError(
                f"desired_count must be a positive integer, got {desired_count!r}",
                desired_count=desired_count,
            )

        tier = self._governor.tier
        remaining = self._governor.remaining()
        # The daily quota counts requests, the planner counts proxies
        quota = desired_count if remaining is None else remaining * tier.per_request_cap
        chunks = plan(desired_count, tier.per_request_cap, quota)

        if not chunks:
            raise QuotaExceededError(
                f"All {tier.daily_limit} requests for today have been used",
                tier=tier.name,
                daily_limit=tier.daily_limit,
            )

        logger.info(
            "Fetching %d proxies in %d request(s)",
            sum(chunks),
            len(chunks),
            extra={"tier": tier.name, "remaining": remaining},
        )
        return chunks

    def _query(self, chunk: int) -> dict[str, str]:
        return self._options.to_query(chunk, api_key=self._api_key)

    def _records(self, response: RawResponse, chunk: int) -> list[ProxyRecord]:
        """Classify one response and decode its proxies."""
        error = classify_response(response)
        if error is not None:
            if isinstance(error, RateLimitedError):
                self._governor.penalize(
                    max(self._governor.tier.min_interval_seconds, _MIN_THROTTLE_BACKOFF_SECONDS)
                )
            elif isinstance(error, QuotaExceededError):
                self._governor.exhaust()
            raise error

        records = decode_proxies(response.text)
        logger.debug(
            "Received %d of %d requested proxies",
            len(records),
            chunk,
            extra={"chunk": chunk, "proxies": len(records)},
        )
        return records

    def _log_abort(self, exc: PubProxyError, done: int, total: int, discarded: int) -> None:
        logger.warning(
            "Fetch aborted after %d of %d request(s), discarding %d proxies: %s",
            done,
            total,
            discarded,
            exc.message,
            extra={"error_kind": exc.kind, "proxies": discarded},
        )


class ProxyFetcher(_FetcherBase):
    """Blocking fetcher; safe to use from many threads sharing one governor.

    Args:
        options: Filters sent with every request.
        governor: The tier's shared governor, usually from ``shared_governor``.
        transport: Sends the HTTP requests.
        api_key: Sent as the ``api`` parameter; must match the governor's tier.
    """

    def __init__(
        self,
        options: ProxyOptions,
        governor: RateGovernor,
        transport: Transport,
        *,
        api_key: str | None = None,
    ) -> None:
        super().__init__(options, governor, api_key=api_key)
        self._transport = transport

    def fetch(self, desired_count: int) -> list[ProxyRecord]:
        """Fetch up to ``desired_count`` proxies.

        Fewer proxies than requested come back when the service has fewer
        matches; that is not an error.

        Raises
        ------
        InvalidRequestError
            If ``desired_count`` is not a positive integer.
        QuotaExceededError
            If the daily quota runs out before or during the call.
        RateLimitedError, TransportError, ServiceError
            If any request fails. Proxies from earlier requests are discarded.
        """
        chunks = self._plan(desired_count)
        proxies: list[ProxyRecord] = []
        for done, chunk in enumerate(chunks):
            try:
                self._governor.reserve()
                response = self._transport.get(self._query(chunk))
                proxies.extend(self._records(response, chunk))
            except PubProxyError as exc:
                self._log_abort(exc, done, len(chunks), len(proxies))
                raise
        return proxies


class AsyncProxyFetcher(_FetcherBase):
    """Asyncio counterpart of ``ProxyFetcher`` with the same contract."""

    def __init__(
        self,
        options: ProxyOptions,
        governor: RateGovernor,
        transport: AsyncTransport,
        *,
        api_key: str | None = None,
    ) -> None:
        super().__init__(options, governor, api_key=api_key)
        self._transport = transport

    async def fetch(self, desired_count: int) -> list[ProxyRecord]:
        """Fetch up to ``desired_count`` proxies; see ``ProxyFetcher.fetch``."""
        chunks = self._plan(desired_count)
        proxies: list[ProxyRecord] = []
        for done, chunk in enumerate(chunks):
            try:
                await self._governor.areserve()
                response = await self._transport.get(self._query(chunk))
                proxies.extend(self._records(response, chunk))
            except PubProxyError as exc:
                self._log_abort(exc, done, len(chunks), len(proxies))
                raise
        return proxies


class Session:
    """Entry point binding the caller's tier to its process-wide governor.

    The tier follows from the API key: keyless callers share the keyless
    governor, key-bearing callers the premium one. Every fetcher spawned by
    any session in the process for the same tier shares that governor.

    Args:
        api_key: Overrides ``settings.api_key`` when given.
        settings: Defaults to ``PubProxySettings()`` read from the environment.
        clock: Time source, only used if this session creates the governor.
        transport: Blocking transport; built from settings when omitted.
        async_transport: Asyncio transport; built from settings when omitted.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        settings: PubProxySettings | None = None,
        clock: Clock | None = None,
        transport: Transport | None = None,
        async_transport: AsyncTransport | None = None,
    ) -> None:
        self._settings = settings or PubProxySettings()
        if api_key is not None:
            self._settings = self._settings.model_copy(update={"api_key": api_key})
        self._api_key = self._settings.api_key
        self._governor = shared_governor(self._settings.tier(), clock)
        self._transport = transport
        self._async_transport = async_transport
        self._owned: list[HttpTransport] = []
        self._owned_async: list[AsyncHttpTransport] = []

    @property
    def governor(self) -> RateGovernor:
        return self._governor

    def fetcher(self, options: ProxyOptions | None = None) -> ProxyFetcher:
        """Spawn a blocking fetcher bound to ``options`` (no filters by default)."""
        if self._transport is None:
            transport = HttpTransport(
                base_url=self._settings.base_url,
                timeout_seconds=self._settings.timeout_seconds,
                user_agent=self._settings.user_agent,
            )
            self._owned.append(transport)
            self._transport = transport
        return ProxyFetcher(
            options or ProxyOptions.builder().build(),
            self._governor,
            self._transport,
            api_key=self._api_key,
        )

    def async_fetcher(self, options: ProxyOptions | None = None) -> AsyncProxyFetcher:
        """Spawn an asyncio fetcher bound to ``options`` (no filters by default)."""
        if self._async_transport is None:
            transport = AsyncHttpTransport(
                base_url=self._settings.base_url,
                timeout_seconds=self._settings.timeout_seconds,
                user_agent=self._settings.user_agent,
            )
            self._owned_async.append(transport)
            self._async_transport = transport
        return AsyncProxyFetcher(
            options or ProxyOptions.builder().build(),
            self._governor,
            self._async_transport,
            api_key=self._api_key,
        )

    def close(self) -> None:
        """Close transports this session created."""
        for transport in self._owned:
            transport.close()
            if self._transport is transport:
                self._transport = None
        self._owned.clear()

    async def aclose(self) -> None:
        """Close every transport this session created, blocking and async."""
        self.close()
        for transport in self._owned_async:
            await transport.aclose()
            if self._async_transport is transport:
                self._async_transport = None
        self._owned_async.clear()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
