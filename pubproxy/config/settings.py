"""Pydantic Settings for the pubproxy client.

All environment variables use the PUBPROXY_ prefix.
Example: PUBPROXY_API_KEY=my-key, PUBPROXY_TIMEOUT_SECONDS=5
"""

from __future__ import annotations

from pydantic import Field, HttpUrl, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings

from pubproxy.config.tiers import Tier, load_tiers, tier_for

_HTTP_URL = TypeAdapter(HttpUrl)


class PubProxySettings(BaseSettings):
    """Client configuration validated from environment variables."""

    # Service
    api_key: str | None = None  # Lifts the daily quota and the request spacing
    base_url: str = "http://pubproxy.com/api/proxy"  # The API does not serve https
    timeout_seconds: float = Field(default=10.0, ge=1)
    user_agent: str = "pubproxy-client/1.0"

    # Logging
    log_level: str = "INFO"

    # Limits override file; None keeps the built-in tiers
    tiers_path: str | None = None

    model_config = {"env_prefix": "PUBPROXY_"}

    @field_validator("base_url")
    @classmethod
    def _base_url_is_http(cls, value: str) -> str:
        try:
            _HTTP_URL.validate_python(value)
        except ValidationError as exc:
            raise ValueError(f"not an http(s) URL: {value!r}") from exc
        return value

    def tier(self) -> Tier:
        """The tier matching the configured API key."""
        return tier_for(self.api_key, load_tiers(self.tiers_path))
