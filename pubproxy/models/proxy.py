"""Proxy records returned by the service and the decoder for its JSON body.

A response looks like::

    {"data": [{"ipPort": "1.2.3.4:80", "country": "US",
               "last_checked": "2020-12-13 20:06:41", "proxy_level": "elite",
               "type": "http", "speed": "10",
               "support": {"https": 0, "get": 1, "post": 1, "cookies": 1,
                           "referer": 1, "user_agent": 1, "google": 0}}],
     "count": 1}
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from ipaddress import IPv4Address

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pubproxy.errors import ServiceError
from pubproxy.models.options import Level, Protocol, is_country_code

logger = logging.getLogger(__name__)

_LAST_CHECKED_FORMAT = "%Y-%m-%d %H:%M:%S"


class Supports(BaseModel):
    """Capabilities the service observed when it last tested the proxy."""

    model_config = ConfigDict(frozen=True)

    https: bool = False
    get: bool = False
    post: bool = False
    cookies: bool = False
    referer: bool = False
    forwards_user_agent: bool = False
    connects_to_google: bool = False


class ProxyRecord(BaseModel):
    """One proxy as listed by the service."""

    model_config = ConfigDict(frozen=True)

    address: IPv4Address
    port: int = Field(ge=1, le=65535)
    protocol: Protocol
    level: Level
    time_to_connect: timedelta
    supports: Supports
    country: str
    last_checked: datetime

    @property
    def socket(self) -> str:
        return f"{self.address}:{self.port}"

    @property
    def url(self) -> str:
        """Proxy URL usable with httpx or requests, e.g. ``socks5://1.2.3.4:1080``."""
        return f"{self.protocol.value}://{self.socket}"


class _RawSupport(BaseModel):
    https: int | None = None
    get: int | None = None
    post: int | None = None
    cookies: int | None = None
    referer: int | None = None
    user_agent: int | None = None
    google: int | None = None

    def to_supports(self) -> Supports:
        # null is read as "not supported"
        return Supports(
            https=self.https == 1,
            get=self.get == 1,
            post=self.post == 1,
            cookies=self.cookies == 1,
            referer=self.referer == 1,
            forwards_user_agent=self.user_agent == 1,
            connects_to_google=self.google == 1,
        )


class _RawProxy(BaseModel):
    ipPort: str
    country: str | None = None
    last_checked: str
    proxy_level: Level
    type: Protocol
    speed: str
    support: _RawSupport = Field(default_factory=_RawSupport)

    @field_validator("speed", mode="before")
    @classmethod
    def _speed_as_text(cls, value: object) -> object:
        # Normally a decimal string, occasionally a bare number
        return str(value) if isinstance(value, int) else value

    def to_record(self) -> ProxyRecord:
        host, _, port = self.ipPort.rpartition(":")
        return ProxyRecord(
            address=IPv4Address(host),
            port=int(port),
            protocol=self.type,
            level=self.proxy_level,
            time_to_connect=timedelta(seconds=int(self.speed)),
            supports=self.support.to_supports(),
            country=self.country or "",
            last_checked=datetime.strptime(self.last_checked, _LAST_CHECKED_FORMAT),
        )


class _RawResponse(BaseModel):
    data: list[_RawProxy]


def decode_proxies(body: str) -> list[ProxyRecord]:
    """Decode a successful response body into proxy records, in service order.

    Records with a country that is not an ISO 3166-1 alpha-2 code are dropped;
    the service occasionally returns such entries.

    Raises
    ------
    ServiceError
        If the body is not the expected JSON document or an entry is malformed.
    """
    try:
        response = _RawResponse.model_validate(json.loads(body))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ServiceError(
            "Could not decode proxy list from the service",
            reason="malformed_body",
            body=body[:200],
        ) from exc

    records: list[ProxyRecord] = []
    for raw in response.data:
        if raw.country is None or not is_country_code(raw.country):
            logger.debug("Dropping proxy %s with unknown country %r", raw.ipPort, raw.country)
            continue
        try:
            records.append(raw.to_record())
        except (ValueError, ValidationError) as exc:
            raise ServiceError(
                f"Malformed proxy entry {raw.ipPort!r}",
                reason="malformed_body",
            ) from exc

    return records
