"""
Recommended price calculation from image-analysis signals.

Each tier has a base USD range. Independent modifiers multiply the range
(they compose multiplicatively), then shipping and a fixed safety margin are
added to both bounds, and each bound is rounded half-up to a whole dollar.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.core.enums import Saturation, Surface, Tier, Uniqueness

SAFETY_MARGIN_USD = 5

BASE_RANGES: Dict[Tier, Tuple[int, int]] = {
    Tier.A: (35, 75),
    Tier.B: (18, 40),
    Tier.C: (8, 20),
}

# (min factor, max factor, label)
STANDOUT_FACTORS = (1.15, 1.2, "uniqueness:Standout:+15-20%")
MUTED_FACTORS = (0.85, 0.9, "color_saturation:Muted:-10-15%")
ROUGH_FACTORS = (0.85, 0.9, "surface_quality:Rough:-10-15%")


def round_half_up(value: float) -> int:
    """Round to the nearest whole unit, .5 going up (12.5 -> 13)."""
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class PriceComputation:
    base_range: Dict[str, int]
    modifiers_applied: List[str]
    price_range: Dict[str, int]
    safety_margin: int = SAFETY_MARGIN_USD
    shipping_included: bool = True

    @property
    def midpoint(self) -> float:
        return (self.price_range["min"] + self.price_range["max"]) / 2

    def recommended_price(self) -> Optional[str]:
        """Midpoint of the range as a decimal string, or None if it is not a positive number."""
        mid = self.midpoint
        if not math.isfinite(mid) or mid <= 0:
            return None
        return f"{mid:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_range_usd": dict(self.base_range),
            "modifiers_applied": list(self.modifiers_applied),
            "shipping_included": self.shipping_included,
            "price_range_usd": dict(self.price_range),
            "safety_margin_usd": self.safety_margin,
        }


def base_range_for_tier(tier: Tier) -> Dict[str, int]:
    low, high = BASE_RANGES[Tier(tier)]
    return {"min": low, "max": high}


def compute_price(
    tier: Tier,
    uniqueness: Uniqueness,
    color_saturation: Saturation,
    surface_quality: Surface,
    shipping_cost_usd: Optional[float] = None,
) -> PriceComputation:
    """
    Deterministic price range for the given signals.

    >>> compute_price(Tier.A, Uniqueness.STANDARD, Saturation.VIBRANT, Surface.POLISHED, 0).price_range
    {'min': 40, 'max': 80}
    """
    base = base_range_for_tier(tier)
    modifiers: List[str] = []
    factor_min = 1.0
    factor_max = 1.0

    applied = (
        (Uniqueness(uniqueness) == Uniqueness.STANDOUT, STANDOUT_FACTORS),
        (Saturation(color_saturation) == Saturation.MUTED, MUTED_FACTORS),
        (Surface(surface_quality) == Surface.ROUGH, ROUGH_FACTORS),
    )
    for active, (f_min, f_max, label) in applied:
        if active:
            factor_min *= f_min
            factor_max *= f_max
            modifiers.append(label)

    shipping = shipping_cost_usd if _valid_shipping(shipping_cost_usd) else 0.0

    low = max(0, round_half_up(base["min"] * factor_min + shipping + SAFETY_MARGIN_USD))
    high = max(0, round_half_up(base["max"] * factor_max + shipping + SAFETY_MARGIN_USD))

    return PriceComputation(
        base_range=base,
        modifiers_applied=modifiers,
        price_range={"min": low, "max": max(low, high)},
    )


def _valid_shipping(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


def _coerce(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def compute_price_from_signals(signals: Optional[Mapping[str, Any]]) -> PriceComputation:
    """
    Price range from loosely-typed analyzer signals. Missing or invalid
    signals fall back to the neutral values: tier B, Standard, Vibrant,
    Polished, no shipping.
    """
    signals = signals if isinstance(signals, Mapping) else {}
    shipping = signals.get("shipping_cost_usd")
    return compute_price(
        tier=_coerce(Tier, signals.get("tier"), Tier.B),
        uniqueness=_coerce(Uniqueness, signals.get("uniqueness"), Uniqueness.STANDARD),
        color_saturation=_coerce(Saturation, signals.get("color_saturation"), Saturation.VIBRANT),
        surface_quality=_coerce(Surface, signals.get("surface_quality"), Surface.POLISHED),
        shipping_cost_usd=shipping if _valid_shipping(shipping) else None,
    )
