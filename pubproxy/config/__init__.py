"""Configuration module: settings and access tiers."""

from pubproxy.config.settings import PubProxySettings
from pubproxy.config.tiers import KEYLESS, PREMIUM, Tier, load_tiers, tier_for

__all__ = [
    "KEYLESS",
    "PREMIUM",
    "PubProxySettings",
    "Tier",
    "load_tiers",
    "tier_for",
]
