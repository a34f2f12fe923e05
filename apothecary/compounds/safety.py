from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from apothecary.models import HerbSafetyRule, Product

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"

# Keyed by product slug; applied when the database has no rule for the herb.
STATIC_SAFETY_RULES: Dict[str, Dict[str, Any]] = {
    "vitex-berry": {"pregnancy": "avoid", "interactions": ["Hormonal medications"]},
    "ashwagandha-root": {"pregnancy": "caution", "interactions": ["Thyroid medications", "Sedatives"]},
    "turmeric-root": {"interactions": ["Blood thinners"]},
    "garlic": {"interactions": ["Blood thinners"]},
    "hawthorn-berry": {"interactions": ["Cardiac medications"]},
}


@dataclass
class SafetyIssue:
    severity: str
    code: str
    message: str
    herb_id: Optional[int] = None
    herb_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SafetyContext:
    pregnancy_status: Optional[str] = None
    medications: List[str] = field(default_factory=list)
    allergies: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "SafetyContext":
        data = data or {}
        return cls(
            pregnancy_status=data.get("pregnancy_status"),
            medications=_normalize_list(data.get("medications")),
            allergies=_normalize_list(data.get("allergies")),
        )


def _normalize_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(entry) for entry in value]
    return []


def _lowered(entries: Sequence[str]) -> List[str]:
    return [entry.strip().lower() for entry in entries if entry and entry.strip()]


def check_formula_safety(
    session: Session,
    formula: Sequence[dict],
    context: Optional[SafetyContext] = None,
) -> List[SafetyIssue]:
    """Flag pregnancy, medication and allergy concerns for each herb in a formula."""
    context = context or SafetyContext()
    product_ids = list({herb.get("product_id") for herb in formula if herb.get("product_id")})
    if not product_ids:
        return []

    rules = {
        rule.productID: rule
        for rule in session.query(HerbSafetyRule).filter(HerbSafetyRule.productID.in_(product_ids)).all()
    }
    products = {
        product.productID: product
        for product in session.query(Product).filter(Product.productID.in_(product_ids)).all()
    }

    medications = _lowered(context.medications)
    allergies = _lowered(context.allergies)
    issues: List[SafetyIssue] = []

    for herb in formula:
        product_id = herb.get("product_id")
        if not product_id:
            continue
        product = products.get(product_id)
        rule = rules.get(product_id)
        static_rule = STATIC_SAFETY_RULES.get(product.slug, {}) if product else {}
        name = product.name if product else None
        label = name or "This herb"

        pregnancy_risk = _enum_value(rule.pregnancy_risk_level) if rule else None
        pregnancy_risk = pregnancy_risk or static_rule.get("pregnancy")
        if pregnancy_risk and context.pregnancy_status and context.pregnancy_status != "not_pregnant":
            if pregnancy_risk == "avoid":
                issues.append(
                    SafetyIssue(
                        SEVERITY_ERROR,
                        "PREGNANCY",
                        f"{label} should be avoided during pregnancy or nursing.",
                        product_id,
                        name,
                    )
                )
            else:
                issues.append(
                    SafetyIssue(
                        SEVERITY_WARNING,
                        "PREGNANCY",
                        f"{label} requires practitioner oversight during pregnancy or nursing.",
                        product_id,
                        name,
                    )
                )

        interactions = _normalize_list(rule.interactions if rule else None) + list(
            static_rule.get("interactions", [])
        )
        if interactions and medications:
            issues.append(
                SafetyIssue(
                    SEVERITY_WARNING,
                    "MEDICATION",
                    f"{label} may interact with: {', '.join(interactions)}. Review before dispensing.",
                    product_id,
                    name,
                )
            )

        herb_name = (name or "").lower()
        if herb_name and any(entry in herb_name for entry in allergies):
            issues.append(
                SafetyIssue(
                    SEVERITY_ERROR,
                    "ALLERGY",
                    f"{label} matches an allergy noted in the intake.",
                    product_id,
                    name,
                )
            )

    return issues


def aggregate_safety_severity(issues: Sequence[SafetyIssue]) -> str:
    if any(issue.severity == SEVERITY_ERROR for issue in issues):
        return SEVERITY_ERROR
    if any(issue.severity == SEVERITY_WARNING for issue in issues):
        return SEVERITY_WARNING
    return SEVERITY_INFO


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value
