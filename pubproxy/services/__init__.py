"""Fetching services: classifier, fetchers and session."""

from pubproxy.services.classifier import classify_response
from pubproxy.services.fetcher import AsyncProxyFetcher, ProxyFetcher, Session

__all__ = [
    "AsyncProxyFetcher",
    "ProxyFetcher",
    "Session",
    "classify_response",
]
