# tests/unit/services/test_pricing.py
import itertools

import pytest

from app.core.enums import Saturation, Surface, Tier, Uniqueness
from app.services.pricing import compute_price, compute_price_from_signals, round_half_up


def test_tier_a_without_modifiers():
    result = compute_price(Tier.A, Uniqueness.STANDARD, Saturation.VIBRANT, Surface.POLISHED, 0)

    assert result.base_range == {"min": 35, "max": 75}
    assert result.modifiers_applied == []
    assert result.safety_margin == 5
    assert result.price_range == {"min": 40, "max": 80}


def test_tier_c_with_every_modifier_and_shipping():
    result = compute_price(Tier.C, Uniqueness.STANDOUT, Saturation.MUTED, Surface.ROUGH, 10)

    assert len(result.modifiers_applied) == 3
    # 8 * 1.15 * 0.85 * 0.85 + 15 = 21.647 ; 20 * 1.2 * 0.9 * 0.9 + 15 = 34.44
    assert result.price_range == {"min": 22, "max": 34}


def test_standout_only():
    result = compute_price(Tier.A, Uniqueness.STANDOUT, Saturation.VIBRANT, Surface.POLISHED)

    assert result.modifiers_applied == ["uniqueness:Standout:+15-20%"]
    assert result.price_range == {"min": 45, "max": 95}


def test_rounding_is_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(13.5) == 14
    assert round_half_up(12.49) == 12


@pytest.mark.parametrize(
    "tier,uniqueness,saturation,surface,shipping",
    list(itertools.product(Tier, Uniqueness, Saturation, Surface, [None, 0, 4.99, 25])),
)
def test_range_is_ordered_and_non_negative(tier, uniqueness, saturation, surface, shipping):
    result = compute_price(tier, uniqueness, saturation, surface, shipping)

    assert result.price_range["min"] >= 0
    assert result.price_range["max"] >= result.price_range["min"]


def test_negative_or_invalid_shipping_is_ignored():
    baseline = compute_price(Tier.B, Uniqueness.STANDARD, Saturation.VIBRANT, Surface.POLISHED, 0)

    assert compute_price(Tier.B, Uniqueness.STANDARD, Saturation.VIBRANT, Surface.POLISHED, -10).price_range == baseline.price_range
    assert compute_price(Tier.B, Uniqueness.STANDARD, Saturation.VIBRANT, Surface.POLISHED, float("nan")).price_range == baseline.price_range


def test_signals_fall_back_to_neutral_values():
    result = compute_price_from_signals({"tier": "Z", "uniqueness": 3, "surface_quality": None, "shipping_cost_usd": "ten"})

    assert result.base_range == {"min": 18, "max": 40}
    assert result.modifiers_applied == []
    assert result.price_range == {"min": 23, "max": 45}


def test_missing_signals_are_neutral():
    assert compute_price_from_signals(None).price_range == {"min": 23, "max": 45}


def test_recommended_price_is_midpoint():
    result = compute_price_from_signals({"tier": "A"})

    assert result.recommended_price() == "60.00"


def test_to_dict_shape():
    data = compute_price(Tier.C, Uniqueness.STANDARD, Saturation.VIBRANT, Surface.POLISHED, 0).to_dict()

    assert data == {
        "base_range_usd": {"min": 8, "max": 20},
        "modifiers_applied": [],
        "shipping_included": True,
        "price_range_usd": {"min": 13, "max": 25},
        "safety_margin_usd": 5,
    }
