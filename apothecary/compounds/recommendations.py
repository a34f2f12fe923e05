"""Starter herb blends for the guided (tier 2) compound builder."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apothecary.config import Config
from apothecary.models import Product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HerbRule:
    slug: str
    name: str
    start_percentage: float
    min_percentage: float
    max_percentage: float
    notes: Optional[str] = None
    avoid_during_pregnancy: bool = False


GOAL_LIBRARY: Dict[str, List[HerbRule]] = {
    "sleep": [
        HerbRule("valerian-root", "Valerian Root", 30, 20, 40, "Deep calm + sleep onset"),
        HerbRule("passionflower", "Passionflower", 25, 15, 35, "Quiet racing thoughts"),
        HerbRule("lemon-balm", "Lemon Balm", 20, 10, 30, "Mood lifting nervine"),
        HerbRule("ashwagandha-root", "Ashwagandha Root", 15, 10, 25, "Night-time adaptogen for busy minds"),
    ],
    "stress": [
        HerbRule("ashwagandha-root", "Ashwagandha", 30, 20, 35, "Adaptogen for cortisol balance"),
        HerbRule("lemon-balm", "Lemon Balm", 20, 10, 25),
        HerbRule("passionflower", "Passionflower", 15, 10, 20),
        HerbRule("hawthorn-berry", "Hawthorn Berry", 10, 5, 20, "Circulatory support for anxious hearts"),
    ],
    "digestion": [
        HerbRule("ginger-root", "Ginger Root", 25, 15, 35),
        HerbRule("peppermint", "Peppermint", 20, 10, 30, "Gas + bloating support"),
        HerbRule("fennel-seed", "Fennel Seed", 20, 10, 25),
        HerbRule("burdock-root", "Burdock Root", 15, 5, 20, "Liver + lymph support"),
    ],
    "immunity": [
        HerbRule("elderberry", "Elderberry", 30, 20, 35),
        HerbRule("echinacea", "Echinacea", 25, 15, 30, "Acute immune activation"),
        HerbRule("astragalus-root", "Astragalus", 20, 10, 25, "Long-term immune resilience"),
        HerbRule("garlic", "Garlic", 10, 5, 15, "Broad antimicrobial"),
    ],
    "energy": [
        HerbRule("astragalus-root", "Astragalus", 25, 15, 30),
        HerbRule("turmeric-root", "Turmeric Root", 15, 10, 20, "Inflammation + joint support"),
        HerbRule("ginger-root", "Ginger Root", 20, 10, 25),
        HerbRule(
            "vitex-berry",
            "Vitex Berry",
            15,
            5,
            20,
            "Hormone-friendly tone for cycling fatigue",
            avoid_during_pregnancy=True,
        ),
    ],
    "detox": [
        HerbRule("burdock-root", "Burdock Root", 25, 15, 30, "Lymphatic drainage + skin clarity"),
        HerbRule("calendula", "Calendula", 20, 10, 25, "Moves lymph and soothes tissue"),
        HerbRule("turmeric-root", "Turmeric Root", 15, 10, 25, "Inflammation + liver support"),
        HerbRule(
            "red-raspberry-leaf",
            "Red Raspberry Leaf",
            15,
            5,
            20,
            "Uterine tone + mineral support",
            avoid_during_pregnancy=True,
        ),
    ],
}

FALLBACK_RULES: List[HerbRule] = [
    HerbRule("lemon-balm", "Lemon Balm", 25, 15, 35),
    HerbRule("ginger-root", "Ginger Root", 20, 10, 30),
    HerbRule("burdock-root", "Burdock Root", 15, 5, 25),
]


def select_herb_rules(goals: List[str]) -> List[HerbRule]:
    """Merge goal rules in order, dedupe by slug and pad from the fallback blend."""
    max_herbs = Config.MAX_RECOMMENDED_HERBS
    min_herbs = Config.MIN_RECOMMENDED_HERBS

    selected: List[HerbRule] = []
    seen = set()
    for goal in goals:
        for rule in GOAL_LIBRARY.get(goal, []):
            if len(selected) >= max_herbs:
                break
            if rule.slug in seen:
                continue
            selected.append(rule)
            seen.add(rule.slug)

    if not selected:
        return list(FALLBACK_RULES)

    if len(selected) < min_herbs:
        padding = [rule for rule in FALLBACK_RULES if rule.slug not in seen]
        selected.extend(padding[: min_herbs - len(selected)])

    return selected


def _load_products(session: Session, slugs: List[str]) -> Dict[str, Product]:
    if not slugs:
        return {}
    try:
        products = session.query(Product).filter(Product.slug.in_(slugs)).all()
    except SQLAlchemyError:
        logger.exception("Failed to load herb metadata for guided recommendations")
        return {}
    return {product.slug: product for product in products}


def generate_guided_recommendations(payload: Any, session: Session) -> Dict[str, Any]:
    rules = select_herb_rules(list(payload.goals))
    products = _load_products(session, [rule.slug for rule in rules])

    suggested_herbs = []
    for rule in rules:
        product = products.get(rule.slug)
        suggested_herbs.append(
            {
                "product_id": product.productID if product else None,
                "slug": rule.slug,
                "name": product.name if product else rule.name,
                "start_percentage": rule.start_percentage,
                "min_percentage": rule.min_percentage,
                "max_percentage": rule.max_percentage,
                "notes": rule.notes,
            }
        )

    warnings = []
    if payload.medications:
        warnings.append(
            {
                "code": "MEDICATIONS",
                "message": "Review potential herb-medication interactions before finalizing this blend.",
            }
        )

    if payload.pregnancy_status != "not_pregnant":
        risky = [rule.name for rule in rules if rule.avoid_during_pregnancy]
        if risky:
            warnings.append(
                {
                    "code": "PREGNANCY",
                    "message": (
                        "The following herbs need practitioner approval during pregnancy or lactation: "
                        f"{', '.join(risky)}."
                    ),
                }
            )

    if "avoid_alcohol" in (payload.sensitivities or []):
        warnings.append(
            {
                "code": "ALCOHOL_BASE",
                "message": (
                    "Current compounds use alcohol extractions. Flag this for glycerite conversion before bottling."
                ),
            }
        )

    goals = list(payload.goals)
    primary_goal = goals[0] if goals else "custom"
    supporting = ", ".join(goals[1:]) or "n/a"

    return {
        "primary_goal": primary_goal,
        "suggested_herbs": suggested_herbs,
        "warnings": warnings,
        "metadata": {
            "goals": goals,
            "pregnancy_status": payload.pregnancy_status,
            "stimulant_sensitivity": payload.stimulant_sensitivity,
            "sleep_quality": payload.sleep_quality,
            "summary": f"Focus: {primary_goal}. Supporting goals: {supporting}.",
        },
    }
