"""Access tier models and YAML loader.

A tier bundles the limits the service applies to a class of caller: how many
proxies one request may return, how many requests a day are allowed and the
minimum spacing between requests. The built-in values mirror the service's
published limits and can be overridden from a YAML file shaped like
``tiers.yaml`` in this package.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class Tier(BaseModel):
    """Limits enforced for one access level."""

    model_config = ConfigDict(frozen=True)

    name: str
    per_request_cap: int = Field(ge=1)
    daily_limit: int | None = Field(default=None, ge=1)  # None = unlimited
    min_interval_seconds: float = Field(default=0.0, ge=0)

    @property
    def is_limited(self) -> bool:
        return self.daily_limit is not None


# Two requests within one second get the caller throttled; the extra 100ms
# absorbs clock jitter between us and the service.
KEYLESS = Tier(name="keyless", per_request_cap=5, daily_limit=50, min_interval_seconds=1.1)
PREMIUM = Tier(name="premium", per_request_cap=20, daily_limit=None, min_interval_seconds=0.0)

_DEFAULT_TIERS: dict[str, Tier] = {"keyless": KEYLESS, "premium": PREMIUM}

DEFAULT_TIERS_PATH = str(Path(__file__).with_name("tiers.yaml"))


def load_tiers(yaml_path: str | None = None) -> dict[str, Tier]:
    """Parse a tiers YAML file into typed Tier objects.

    Args:
        yaml_path: Path to the YAML configuration file. ``None`` returns the
            built-in tiers.

    Returns:
        A dict with "keyless" and "premium" keys. Tiers missing from the file,
        or invalid in it, keep their built-in values.
    """
    tiers = dict(_DEFAULT_TIERS)
    if yaml_path is None:
        return tiers

    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Tiers file not found at %s, using built-in limits", yaml_path)
        return tiers

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse tiers YAML at %s: %s", yaml_path, exc)
        return tiers

    if not isinstance(raw, dict) or not isinstance(raw.get("tiers"), dict):
        logger.warning("Tiers YAML missing 'tiers' mapping, using built-in limits")
        return tiers

    for name, config in raw["tiers"].items():
        if name not in _DEFAULT_TIERS:
            logger.warning("Ignoring unknown tier '%s' in %s", name, yaml_path)
            continue
        try:
            tiers[name] = Tier.model_validate({**(config or {}), "name": name})
        except Exception as exc:
            logger.error("Invalid limits for tier '%s': %s, keeping built-in", name, exc)

    return tiers


def tier_for(api_key: str | None, tiers: dict[str, Tier] | None = None) -> Tier:
    """Pick the tier that applies to a caller with (or without) an API key."""
    tiers = tiers or _DEFAULT_TIERS
    return tiers["premium"] if api_key else tiers["keyless"]
