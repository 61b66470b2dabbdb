"""Proxy filter options and the builder that validates them.

``ProxyOptions`` is an immutable description of the proxies a caller wants.
It is only produced by ``OptionsBuilder.build()``, which rejects
contradictory or out-of-range combinations before any request is made.
Unset fields place no constraint on the returned proxies.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import timedelta
from enum import Enum

import pycountry
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from pubproxy.errors import ConfigurationError

_COUNTRY_SHAPE = re.compile(r"^[A-Z]{2}$")


def is_country_code(code: str) -> bool:
    """True if ``code`` is an assigned ISO 3166-1 alpha-2 country code."""
    return bool(_COUNTRY_SHAPE.match(code)) and pycountry.countries.get(alpha_2=code) is not None


class Level(str, Enum):
    """Anonymity level of a proxy. The service does not list transparent proxies."""

    ANONYMOUS = "anonymous"
    ELITE = "elite"


class Protocol(str, Enum):
    """Protocol spoken by a proxy."""

    HTTP = "http"
    SOCKS4 = "socks4"
    SOCKS5 = "socks5"


class ProxyOptions(BaseModel):
    """Validated, immutable filter criteria sent with every request.

    Durations are stored in the unit the service expects: ``last_checked`` in
    minutes and ``time_to_connect`` in seconds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    level: Level | None = None
    protocol: Protocol | None = None
    countries: tuple[str, ...] = ()
    not_countries: tuple[str, ...] = ()
    last_checked: int | None = Field(default=None, ge=1, le=1000)
    port: int | None = Field(default=None, ge=1, le=65535)
    time_to_connect: int | None = Field(default=None, ge=1, le=60)
    cookies: bool | None = None
    connects_to_google: bool | None = None
    https: bool | None = None
    post: bool | None = None
    referer: bool | None = None
    forwards_user_agent: bool | None = None

    @classmethod
    def builder(cls) -> OptionsBuilder:
        return OptionsBuilder()

    @field_validator("countries", "not_countries", mode="before")
    @classmethod
    def _normalize_countries(cls, value: object) -> tuple[str, ...]:
        if isinstance(value, str):
            raise ValueError("expected a collection of country codes, not a string")
        codes = tuple(str(code).strip().upper() for code in value)  # type: ignore[union-attr]
        bad = [code for code in codes if not is_country_code(code)]
        if bad:
            raise ValueError(f"not ISO 3166-1 alpha-2 codes: {', '.join(bad)}")
        return codes

    @model_validator(mode="after")
    def _exclusive_countries(self) -> ProxyOptions:
        if self.countries and self.not_countries:
            raise ValueError("countries and not_countries cannot both be set")
        return self

    def to_query(self, limit: int, api_key: str | None = None) -> dict[str, str]:
        """Serialize into the service's query parameters."""
        params: dict[str, str] = {"format": "json", "limit": str(limit)}
        if api_key:
            params["api"] = api_key
        if self.level is not None:
            params["level"] = self.level.value
        if self.protocol is not None:
            params["type"] = self.protocol.value
        if self.countries:
            params["country"] = ",".join(self.countries)
        if self.not_countries:
            params["not_country"] = ",".join(self.not_countries)
        if self.last_checked is not None:
            params["last_check"] = str(self.last_checked)
        if self.port is not None:
            params["port"] = str(self.port)
        if self.time_to_connect is not None:
            params["speed"] = str(self.time_to_connect)

        for field_name, param in _BOOL_PARAMS.items():
            value = getattr(self, field_name)
            if value is not None:
                params[param] = "true" if value else "false"

        return params


_BOOL_PARAMS = {
    "cookies": "cookies",
    "connects_to_google": "google",
    "https": "https",
    "post": "post",
    "referer": "referer",
    "forwards_user_agent": "user_agent",
}


def _whole_units(value: timedelta | int | float, unit_seconds: int) -> int:
    """Convert a duration to whole service units, rejecting fractions."""
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
        units = seconds / unit_seconds
    else:
        units = value
    if units != int(units):
        raise ValueError(f"must be a whole number of {unit_seconds}s units, got {value!r}")
    return int(units)


class OptionsBuilder:
    """Accumulates option values; validation happens only in ``build()``.

    Setters may be called in any order and return the builder::

        options = (
            ProxyOptions.builder()
            .protocol(Protocol.SOCKS5)
            .countries(["US", "CA"])
            .post(True)
            .build()
        )
    """

    def __init__(self) -> None:
        self._values: dict[str, object] = {}
        self._countries: list[str] = []
        self._not_countries: list[str] = []
        self._errors: list[dict[str, str]] = []

    def level(self, level: Level | str) -> OptionsBuilder:
        self._values["level"] = level
        return self

    def protocol(self, protocol: Protocol | str) -> OptionsBuilder:
        self._values["protocol"] = protocol
        return self

    def country(self, code: str) -> OptionsBuilder:
        """Allow proxies located in ``code`` (appends to the allow-list)."""
        self._countries.append(code)
        return self

    def countries(self, codes: Iterable[str]) -> OptionsBuilder:
        """Replace the allow-list of countries."""
        self._countries = list(codes)
        return self

    def not_country(self, code: str) -> OptionsBuilder:
        """Exclude proxies located in ``code`` (appends to the deny-list)."""
        self._not_countries.append(code)
        return self

    def not_countries(self, codes: Iterable[str]) -> OptionsBuilder:
        """Replace the deny-list of countries."""
        self._not_countries = list(codes)
        return self

    def last_checked(self, within: timedelta | int) -> OptionsBuilder:
        """Only proxies checked within this window; whole minutes, 1 to 1000."""
        self._set_duration("last_checked", within, unit_seconds=60)
        return self

    def port(self, port: int) -> OptionsBuilder:
        self._values["port"] = port
        return self

    def time_to_connect(self, at_most: timedelta | int) -> OptionsBuilder:
        """Only proxies that connected this fast when tested; whole seconds, 1 to 60."""
        self._set_duration("time_to_connect", at_most, unit_seconds=1)
        return self

    def cookies(self, value: bool) -> OptionsBuilder:
        self._values["cookies"] = value
        return self

    def connects_to_google(self, value: bool) -> OptionsBuilder:
        self._values["connects_to_google"] = value
        return self

    def https(self, value: bool) -> OptionsBuilder:
        self._values["https"] = value
        return self

    def post(self, value: bool) -> OptionsBuilder:
        self._values["post"] = value
        return self

    def referer(self, value: bool) -> OptionsBuilder:
        self._values["referer"] = value
        return self

    def forwards_user_agent(self, value: bool) -> OptionsBuilder:
        self._values["forwards_user_agent"] = value
        return self

    def build(self) -> ProxyOptions:
        """Validate the accumulated values.

        Raises
        ------
        ConfigurationError
            With ``details["fields"]`` listing every invalid field.
        """
        field_errors = list(self._errors)
        data = {
            **self._values,
            "countries": tuple(self._countries),
            "not_countries": tuple(self._not_countries),
        }

        options: ProxyOptions | None = None
        try:
            options = ProxyOptions.model_validate(data)
        except ValidationError as exc:
            field_errors.extend(
                {
                    "field": ".".join(str(loc) for loc in err["loc"]) or "options",
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in exc.errors()
            )

        if field_errors or options is None:
            raise ConfigurationError(fields=field_errors)
        return options

    def _set_duration(self, name: str, value: timedelta | int, *, unit_seconds: int) -> None:
        # Drop an earlier conversion error for the same field.
        self._errors = [err for err in self._errors if err["field"] != name]
        try:
            self._values[name] = _whole_units(value, unit_seconds)
        except (TypeError, ValueError, OverflowError) as exc:
            self._values.pop(name, None)
            self._errors.append({"field": name, "message": str(exc), "type": "duration"})
