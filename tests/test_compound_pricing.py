import pytest

from apothecary.compounds import (
    calculate_compound_price,
    clamp_price,
    fetch_pricing_rule,
    format_price_breakdown,
)
from apothecary.errors import PricingError
from apothecary.models import CompoundPricingRule


def _half_and_half(herbs):
    return [
        {"product_id": herbs["lemon-balm"].productID, "percentage": 50},
        {"product_id": herbs["ginger-root"].productID, "percentage": 50},
    ]


def test_clamp_price_scales_bounds_with_bottle_volume():
    rule = CompoundPricingRule(tier=1, min_price_per_100ml=20, max_price_per_100ml=60, default_margin=0)

    assert clamp_price(5, rule) == 20
    assert clamp_price(75, rule) == 60
    assert clamp_price(33.3, rule) == 33.3
    assert clamp_price(5, rule, bottle_volume_ml=50) == 10
    assert clamp_price(45, rule, bottle_volume_ml=50) == 30


def test_clamp_price_returns_value_when_bound_missing():
    rule = CompoundPricingRule(tier=3, min_price_per_100ml=60, max_price_per_100ml=None, default_margin=0)

    assert clamp_price(12.5, rule) == 12.5
    assert clamp_price(500, rule) == 500


def test_fetch_pricing_rule_missing_tier(db_session):
    with pytest.raises(PricingError) as excinfo:
        fetch_pricing_rule(db_session, 2)

    assert str(excinfo.value) == "Pricing rule not configured for tier 2: missing record"


def test_price_within_range_applies_margin(db_session, herbs, pricing_rules):
    # 0.20/ml * 50ml + 0.30/ml * 50ml = 25.00 base, +25% = 31.25
    breakdown = calculate_compound_price(db_session, _half_and_half(herbs), tier=1)

    assert breakdown.base_cost == 25.0
    assert breakdown.margin_applied == pytest.approx(0.25)
    assert breakdown.price == 31.25
    assert breakdown.bottle_volume_ml == 100
    assert breakdown.rule.tier == 1


def test_price_is_raised_to_tier_minimum(db_session, herbs, pricing_rules):
    breakdown = calculate_compound_price(db_session, _half_and_half(herbs), tier=2)

    # 25.00 * 1.35 = 33.75 is below the tier 2 floor of 40
    assert breakdown.base_cost == 25.0
    assert breakdown.price == 40.0


def test_price_is_capped_at_tier_maximum(db_session, make_product, pricing_rules):
    rare = make_product("Sandalwood", price=400.00)

    breakdown = calculate_compound_price(db_session, [{"product_id": rare.productID, "percentage": 100}], tier=1)

    assert breakdown.base_cost == 400.0
    assert breakdown.price == 60.0


def test_unknown_products_are_skipped(db_session, herbs, pricing_rules):
    formula = [
        {"product_id": herbs["lemon-balm"].productID, "percentage": 50},
        {"product_id": 9999, "percentage": 50},
    ]

    breakdown = calculate_compound_price(db_session, formula, tier=1)

    assert breakdown.base_cost == 10.0
    assert breakdown.price == 20.0


def test_product_volume_is_respected(db_session, make_product, pricing_rules):
    # 50ml bottle of stock at 15.00 -> 0.30/ml
    small = make_product("Skullcap", price=15.00, volume_ml=50)

    breakdown = calculate_compound_price(db_session, [{"product_id": small.productID, "percentage": 100}], tier=1)

    assert breakdown.base_cost == 30.0
    assert breakdown.price == 37.5


def test_empty_formula_raises(db_session, pricing_rules):
    with pytest.raises(PricingError, match="Formula must include at least one herb."):
        calculate_compound_price(db_session, [], tier=1)


def test_format_price_breakdown(db_session, herbs, pricing_rules):
    breakdown = calculate_compound_price(db_session, _half_and_half(herbs), tier=2)

    assert format_price_breakdown(breakdown) == {
        "price": "40.00",
        "base_cost": "25.00",
        "margin": "35%",
        "tier_range": "40-90 per 100ml",
    }
