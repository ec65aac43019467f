"""Feature limit entities and the pure allow/deny evaluation."""
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from ..plans import UNLIMITED

LimitValue = Union[bool, str]


class DecisionReason:
    """Why a feature decision came out the way it did."""

    BOOLEAN = "boolean"
    UNLIMITED = "unlimited"
    WITHIN_LIMIT = "within_limit"
    LIMIT_REACHED = "limit_reached"
    NOT_CONFIGURED = "not_configured"
    INVALID_LIMIT = "invalid_limit"


@dataclass(frozen=True)
class PriceTierConfig:
    """Limit of one feature for one Stripe price; ``price_id=None`` is the free tier."""

    price_id: Optional[str]
    limit: LimitValue

    @classmethod
    def from_dict(cls, data: Any) -> Optional["PriceTierConfig"]:
        """Parse one ``price_configs`` entry, or None if it is not a mapping with a limit."""
        if not isinstance(data, dict) or "limit" not in data:
            return None
        limit = data["limit"]
        # JSON numbers are accepted as their string form
        if isinstance(limit, int) and not isinstance(limit, bool):
            limit = str(limit)
        if not isinstance(limit, (bool, str)):
            return None
        return cls(price_id=data.get("price_id"), limit=limit)


def parse_price_configs(raw: Any) -> list[PriceTierConfig]:
    """Parse a feature flag's ``price_configs`` column, skipping malformed entries."""
    if not isinstance(raw, list):
        return []
    configs = (PriceTierConfig.from_dict(item) for item in raw)
    return [config for config in configs if config is not None]


def select_config(
    configs: Iterable[PriceTierConfig],
    stripe_price_id: Optional[str],
) -> Optional[PriceTierConfig]:
    """Pick the config for a price, falling back to the free tier.

    With several configs for the same price the first one wins.
    """
    configs = list(configs)
    free_config = next((c for c in configs if c.price_id is None), None)
    if stripe_price_id is None:
        return free_config
    matching = next((c for c in configs if c.price_id == stripe_price_id), None)
    return matching or free_config


def parse_numeric_limit(limit: LimitValue) -> Optional[int]:
    """Return the cap of a numeric-string limit, or None if it is not one."""
    if isinstance(limit, bool) or not isinstance(limit, str):
        return None
    value = limit.strip()
    if not value.isdecimal():
        return None
    return int(value)


@dataclass(frozen=True)
class FeatureDecision:
    """Allow/deny outcome of a feature against current usage."""

    feature: str
    allowed: bool
    limit: Optional[LimitValue]
    remaining: Optional[int]
    reason: str

    @property
    def is_unlimited(self) -> bool:
        return self.limit == UNLIMITED

    def to_dict(self) -> dict[str, Any]:
        return {
            "feature": self.feature,
            "allowed": self.allowed,
            "limit": self.limit,
            "remaining": self.remaining,
            "reason": self.reason,
        }


def evaluate_limit(
    feature: str,
    limit: Optional[LimitValue],
    current_usage: int = 0,
) -> FeatureDecision:
    """Decide whether one more unit of ``feature`` is allowed.

    Boolean limits are returned as-is, ``"unlimited"`` always allows, and
    numeric strings allow while ``current_usage < limit``. A missing or
    unparseable limit denies.
    """
    if limit is None:
        return FeatureDecision(feature, False, None, None, DecisionReason.NOT_CONFIGURED)

    if isinstance(limit, bool):
        return FeatureDecision(feature, limit, limit, None, DecisionReason.BOOLEAN)

    if limit == UNLIMITED:
        return FeatureDecision(feature, True, UNLIMITED, None, DecisionReason.UNLIMITED)

    cap = parse_numeric_limit(limit)
    if cap is None:
        return FeatureDecision(feature, False, limit, None, DecisionReason.INVALID_LIMIT)

    usage = max(0, current_usage)
    allowed = usage < cap
    return FeatureDecision(
        feature=feature,
        allowed=allowed,
        limit=limit,
        remaining=max(0, cap - usage),
        reason=DecisionReason.WITHIN_LIMIT if allowed else DecisionReason.LIMIT_REACHED,
    )
