"""Unit tests for ProxyOptions and OptionsBuilder."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from pubproxy.errors import ConfigurationError
from pubproxy.models.options import Level, OptionsBuilder, Protocol, ProxyOptions


def _fields(exc: ConfigurationError) -> set[str]:
    return {err["field"] for err in exc.details["fields"]}


class TestBuild:
    def test_empty_builder_yields_unfiltered_options(self) -> None:
        options = ProxyOptions.builder().build()
        assert options == ProxyOptions()
        assert options.countries == ()
        assert options.protocol is None

    def test_builder_entry_point(self) -> None:
        assert isinstance(ProxyOptions.builder(), OptionsBuilder)

    def test_kitchen_sink(self) -> None:
        options = (
            ProxyOptions.builder()
            .level(Level.ELITE)
            .protocol(Protocol.SOCKS4)
            .not_countries(["ch", "ES"])
            .last_checked(timedelta(minutes=10))
            .time_to_connect(timedelta(seconds=10))
            .port(8080)
            .cookies(True)
            .connects_to_google(False)
            .https(True)
            .post(False)
            .referer(True)
            .forwards_user_agent(False)
            .build()
        )
        assert options.level is Level.ELITE
        assert options.protocol is Protocol.SOCKS4
        assert options.not_countries == ("CH", "ES")
        assert options.last_checked == 10
        assert options.time_to_connect == 10
        assert options.port == 8080
        assert options.connects_to_google is False

    def test_setters_in_any_order_and_last_call_wins(self) -> None:
        options = (
            ProxyOptions.builder()
            .post(True)
            .protocol("http")
            .protocol("socks5")
            .build()
        )
        assert options.protocol is Protocol.SOCKS5
        assert options.post is True

    def test_country_appends_countries_replaces(self) -> None:
        builder = ProxyOptions.builder().country("US").country("CA")
        assert builder.build().countries == ("US", "CA")
        assert builder.countries(["DE"]).build().countries == ("DE",)

    def test_durations_accept_plain_numbers(self) -> None:
        options = ProxyOptions.builder().last_checked(30).time_to_connect(5).build()
        assert options.last_checked == 30
        assert options.time_to_connect == 5

    def test_options_are_immutable(self) -> None:
        options = ProxyOptions.builder().port(80).build()
        with pytest.raises(ValidationError):
            options.port = 81  # type: ignore[misc]


class TestValidation:
    def test_allow_and_deny_lists_are_exclusive(self) -> None:
        builder = ProxyOptions.builder().country("US").not_country("CN")
        with pytest.raises(ConfigurationError) as exc_info:
            builder.build()
        assert exc_info.value.details["fields"]

    @pytest.mark.parametrize("value", [-1, 0, 61])
    def test_time_to_connect_range(self, value: int) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ProxyOptions.builder().time_to_connect(value).build()
        assert "time_to_connect" in _fields(exc_info.value)

    @pytest.mark.parametrize("value", [-5, 0, 1001])
    def test_last_checked_range(self, value: int) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ProxyOptions.builder().last_checked(value).build()
        assert "last_checked" in _fields(exc_info.value)

    @pytest.mark.parametrize("value", [-1, 0, 70000])
    def test_port_range(self, value: int) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ProxyOptions.builder().port(value).build()
        assert "port" in _fields(exc_info.value)

    def test_negative_timedelta_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            ProxyOptions.builder().time_to_connect(timedelta(seconds=-3)).build()

    def test_fractional_minutes_rejected(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ProxyOptions.builder().last_checked(timedelta(seconds=90)).build()
        assert "last_checked" in _fields(exc_info.value)

    def test_fractional_seconds_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            ProxyOptions.builder().time_to_connect(2.5).build()

    def test_later_valid_duration_clears_earlier_error(self) -> None:
        options = ProxyOptions.builder().time_to_connect(2.5).time_to_connect(2).build()
        assert options.time_to_connect == 2

    def test_unsupported_protocol(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ProxyOptions.builder().protocol("https").build()
        assert "protocol" in _fields(exc_info.value)

    def test_unsupported_level(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ProxyOptions.builder().level("transparent").build()
        assert "level" in _fields(exc_info.value)

    @pytest.mark.parametrize("code", ["USA", "1A", "", "u", "ZZ", "XX"])
    def test_bad_country_codes(self, code: str) -> None:
        with pytest.raises(ConfigurationError):
            ProxyOptions.builder().country(code).build()

    def test_unassigned_code_is_reported_by_field(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ProxyOptions.builder().not_country("ZZ").build()
        assert "not_countries" in _fields(exc_info.value)

    def test_lowercase_assigned_code_is_accepted(self) -> None:
        assert ProxyOptions.builder().country("gb").build().countries == ("GB",)

    def test_every_invalid_field_is_reported(self) -> None:
        builder = ProxyOptions.builder().port(-1).time_to_connect(-1).level("nope")
        with pytest.raises(ConfigurationError) as exc_info:
            builder.build()
        assert {"port", "time_to_connect", "level"} <= _fields(exc_info.value)


class TestToQuery:
    def test_defaults(self) -> None:
        params = ProxyOptions.builder().build().to_query(5)
        assert params == {"format": "json", "limit": "5"}

    def test_api_key_is_sent_as_api(self) -> None:
        params = ProxyOptions.builder().build().to_query(20, api_key="<key>")
        assert params == {"format": "json", "limit": "20", "api": "<key>"}

    def test_kitchen_sink(self) -> None:
        options = (
            ProxyOptions.builder()
            .level(Level.ELITE)
            .protocol(Protocol.SOCKS4)
            .not_countries(["CH", "ES"])
            .last_checked(timedelta(minutes=10))
            .time_to_connect(timedelta(seconds=10))
            .port(8080)
            .cookies(True)
            .connects_to_google(False)
            .https(True)
            .post(False)
            .referer(True)
            .forwards_user_agent(False)
            .build()
        )
        assert options.to_query(20, api_key="k") == {
            "format": "json",
            "limit": "20",
            "api": "k",
            "level": "elite",
            "type": "socks4",
            "not_country": "CH,ES",
            "last_check": "10",
            "speed": "10",
            "port": "8080",
            "cookies": "true",
            "google": "false",
            "https": "true",
            "post": "false",
            "referer": "true",
            "user_agent": "false",
        }

    def test_allow_list_is_comma_joined(self) -> None:
        params = ProxyOptions.builder().countries(["US", "CA"]).build().to_query(1)
        assert params["country"] == "US,CA"
        assert "not_country" not in params
