"""
Command line entry point: fetch proxies and print them.

Usage examples
--------------
# Ten proxies of any kind, one ip:port per line
python -m pubproxy 10

# SOCKS5 proxies located in the US or Canada, as JSON records
python -m pubproxy 5 --protocol socks5 --country US --country CA --json

# Only proxies without HTTPS support (https=false)
python -m pubproxy 3 --no-https

Exit status is 0 on success, 2 for invalid options or arguments and 1 when
the service or the network fails.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from pubproxy.config.settings import PubProxySettings
from pubproxy.errors import ConfigurationError, InvalidRequestError, PubProxyError
from pubproxy.logging_config import configure_logging
from pubproxy.models.options import Level, Protocol, ProxyOptions
from pubproxy.services.fetcher import Session

logger = logging.getLogger("pubproxy.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pubproxy",
        description="Fetch public proxies from pubproxy.com within its usage limits.",
    )
    parser.add_argument("count", type=int, help="Number of proxies to fetch")
    parser.add_argument("--protocol", choices=[p.value for p in Protocol])
    parser.add_argument("--level", choices=[lv.value for lv in Level])
    parser.add_argument("--country", action="append", default=[], metavar="CC",
                        help="Allow proxies from this country (repeatable)")
    parser.add_argument("--not-country", action="append", default=[], metavar="CC",
                        help="Exclude proxies from this country (repeatable)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--time-to-connect", type=int, metavar="SECONDS")
    parser.add_argument("--last-checked", type=int, metavar="MINUTES")
    # Each capability filter has a --no- form; omitting both leaves it unfiltered
    toggle = argparse.BooleanOptionalAction
    parser.add_argument("--https", action=toggle, default=None)
    parser.add_argument("--post", action=toggle, default=None)
    parser.add_argument("--cookies", action=toggle, default=None)
    parser.add_argument("--referer", action=toggle, default=None)
    parser.add_argument("--user-agent", action=toggle, default=None,
                        dest="forwards_user_agent")
    parser.add_argument("--google", action=toggle, default=None,
                        dest="connects_to_google")
    parser.add_argument("--json", action="store_true", help="Print full records as JSON")
    parser.add_argument("--log-level", default=None, help="Overrides PUBPROXY_LOG_LEVEL")
    return parser


def _options_from_args(args: argparse.Namespace) -> ProxyOptions:
    builder = ProxyOptions.builder().countries(args.country).not_countries(args.not_country)
    if args.protocol:
        builder.protocol(args.protocol)
    if args.level:
        builder.level(args.level)
    if args.port is not None:
        builder.port(args.port)
    if args.time_to_connect is not None:
        builder.time_to_connect(args.time_to_connect)
    if args.last_checked is not None:
        builder.last_checked(args.last_checked)
    for flag in ("https", "post", "cookies", "referer", "forwards_user_agent", "connects_to_google"):
        value = getattr(args, flag)
        if value is not None:
            getattr(builder, flag)(value)
    return builder.build()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        settings = PubProxySettings()
    except ValidationError as exc:
        configure_logging(args.log_level or "INFO")
        logger.error("Invalid PUBPROXY_* settings: %s", exc, extra={"error_kind": "ConfigurationError"})
        return 2
    configure_logging(args.log_level or settings.log_level)

    try:
        options = _options_from_args(args)
        with Session(settings=settings) as session:
            proxies = session.fetcher(options).fetch(args.count)
    except (ConfigurationError, InvalidRequestError) as exc:
        logger.error("%s %s", exc.message, exc.details or "", extra={"error_kind": exc.kind})
        return 2
    except PubProxyError as exc:
        logger.error("%s", exc.message, extra={"error_kind": exc.kind})
        return 1

    for proxy in proxies:
        if args.json:
            print(json.dumps(proxy.model_dump(mode="json")))
        else:
            print(proxy.socket)
    return 0


if __name__ == "__main__":
    sys.exit(main())
