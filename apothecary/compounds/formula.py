from __future__ import annotations

import math
from numbers import Real
from typing import Any, List, Optional

from apothecary.config import Config
from apothecary.models import CompoundType


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return not math.isnan(value)


def _is_identifier(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    return isinstance(value, str) and value.isdigit() and int(value) > 0


def validate_formula(formula: Any) -> Optional[str]:
    """Return the first problem with a herb formula, or ``None`` when it is usable."""
    if not isinstance(formula, list) or not formula:
        return "Formula must contain at least one herb."

    total = 0.0
    for herb in formula:
        if not isinstance(herb, dict) or not _is_identifier(herb.get("product_id")):
            return "Each herb must include a product_id."
        percentage = herb.get("percentage")
        if not _is_number(percentage):
            return "Each herb must include a numeric percentage."
        if percentage <= 0:
            return "Herb percentages must be greater than zero."
        total += float(percentage)

    if abs(total - 100) > Config.FORMULA_TOTAL_TOLERANCE:
        return "Formula percentages must add up to 100."

    return None


def normalize_formula(formula: List[dict]) -> List[dict]:
    """Strip a validated formula down to the persisted ``product_id``/``percentage`` pairs."""
    return [
        {"product_id": int(herb["product_id"]), "percentage": float(herb["percentage"])}
        for herb in formula
    ]


def enforce_type_for_tier(tier: int, requested: Optional[str] = None) -> CompoundType:
    if tier == 1:
        return CompoundType.PRESET
    if tier == 2:
        return CompoundType.GUIDED
    if requested:
        return CompoundType(requested)
    return CompoundType.PRACTITIONER
