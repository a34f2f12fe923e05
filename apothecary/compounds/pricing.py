"""
Compound pricing.

The base cost is the per-ml catalog price of each herb scaled to its share of
the bottle. The tier's default margin is applied on top and the result is
clamped to the tier's per-100ml price range.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from apothecary.config import Config
from apothecary.errors import PricingError
from apothecary.models import CompoundPricingRule, Product

logger = logging.getLogger(__name__)


@dataclass
class PriceBreakdown:
    price: float
    base_cost: float
    margin_applied: float
    rule: CompoundPricingRule
    bottle_volume_ml: float


def _to_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def fetch_pricing_rule(session: Session, tier: int) -> CompoundPricingRule:
    rule = session.query(CompoundPricingRule).filter(CompoundPricingRule.tier == tier).first()
    if rule is None:
        raise PricingError(f"Pricing rule not configured for tier {tier}: missing record")
    return rule


def clamp_price(value: float, rule: CompoundPricingRule, bottle_volume_ml: float = 100) -> float:
    scale = bottle_volume_ml / 100
    minimum = _to_float(rule.min_price_per_100ml)
    maximum = _to_float(rule.max_price_per_100ml)
    if minimum is None or maximum is None:
        return value

    minimum *= scale
    maximum *= scale
    if not math.isfinite(minimum) or not math.isfinite(maximum):
        return value

    return min(max(value, minimum), maximum)


def calculate_compound_price(
    session: Session,
    formula: Sequence[dict],
    tier: int,
    bottle_volume_ml: Optional[float] = None,
) -> PriceBreakdown:
    if not formula:
        raise PricingError("Formula must include at least one herb.")

    bottle_volume_ml = bottle_volume_ml or Config.COMPOUND_DEFAULT_BOTTLE_ML
    rule = fetch_pricing_rule(session, tier)

    product_ids = list({herb["product_id"] for herb in formula if herb.get("product_id")})
    products: Dict[int, Product] = {}
    if product_ids:
        for product in session.query(Product).filter(Product.productID.in_(product_ids)).all():
            products[product.productID] = product

    base_cost = 0.0
    for herb in formula:
        product = products.get(herb.get("product_id"))
        if product is None:
            logger.debug("Skipping unpriced herb %s", herb.get("product_id"))
            continue
        price = _to_float(product.price)
        volume = _to_float(product.volume_ml or 100)
        if price is None or volume is None or not math.isfinite(price) or not math.isfinite(volume):
            continue
        herb_volume = (float(herb["percentage"]) / 100) * bottle_volume_ml
        base_cost += price / volume * herb_volume

    margin = _to_float(rule.default_margin) or 0.0
    raw_price = base_cost * (1 + margin)
    final_price = clamp_price(raw_price, rule, bottle_volume_ml)

    return PriceBreakdown(
        price=round(final_price, 2),
        base_cost=round(base_cost, 2),
        margin_applied=margin,
        rule=rule,
        bottle_volume_ml=bottle_volume_ml,
    )


def _format_bound(value) -> str:
    number = _to_float(value)
    if number is None:
        return "n/a"
    return f"{number:g}"


def format_price_breakdown(breakdown: PriceBreakdown) -> Dict[str, str]:
    rule = breakdown.rule
    return {
        "price": f"{breakdown.price:.2f}",
        "base_cost": f"{breakdown.base_cost:.2f}",
        "margin": f"{round(breakdown.margin_applied * 100)}%",
        "tier_range": (
            f"{_format_bound(rule.min_price_per_100ml)}-{_format_bound(rule.max_price_per_100ml)} per 100ml"
        ),
    }


def price_breakdown_payload(breakdown: PriceBreakdown) -> Dict[str, object]:
    """JSON body for API responses: raw numbers plus the display strings."""
    return {
        "price": breakdown.price,
        "base_cost": breakdown.base_cost,
        "margin_applied": breakdown.margin_applied,
        "bottle_volume_ml": breakdown.bottle_volume_ml,
        "rule": breakdown.rule.to_dict(),
        "display": format_price_breakdown(breakdown),
    }


__all__: List[str] = [
    "PriceBreakdown",
    "fetch_pricing_rule",
    "clamp_price",
    "calculate_compound_price",
    "format_price_breakdown",
    "price_breakdown_payload",
]
