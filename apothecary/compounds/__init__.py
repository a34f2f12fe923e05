"""Compound builder engine: formula checks, pricing, safety and guided blends."""

from .formula import enforce_type_for_tier, normalize_formula, validate_formula
from .pricing import (
    PriceBreakdown,
    calculate_compound_price,
    clamp_price,
    fetch_pricing_rule,
    format_price_breakdown,
)
from .safety import (
    STATIC_SAFETY_RULES,
    SafetyContext,
    SafetyIssue,
    aggregate_safety_severity,
    check_formula_safety,
)
from .gating import GuidedAssessmentGate, resolve_guided_assessment_for_builder
from .recommendations import generate_guided_recommendations

__all__ = [
    "enforce_type_for_tier",
    "normalize_formula",
    "validate_formula",
    "PriceBreakdown",
    "calculate_compound_price",
    "clamp_price",
    "fetch_pricing_rule",
    "format_price_breakdown",
    "STATIC_SAFETY_RULES",
    "SafetyContext",
    "SafetyIssue",
    "aggregate_safety_severity",
    "check_formula_safety",
    "GuidedAssessmentGate",
    "resolve_guided_assessment_for_builder",
    "generate_guided_recommendations",
]
