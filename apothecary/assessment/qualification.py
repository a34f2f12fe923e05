"""Lead qualification and the next-step recommendation shown on the results page."""
from __future__ import annotations

from typing import Any

from apothecary.assessment.types import (
    CallToAction,
    CurrentSituation,
    NextStepRecommendation,
    PreferredSupport,
    QualificationLevel,
)

CHRONIC_SITUATIONS = frozenset(
    {
        CurrentSituation.MANAGING_CHRONIC.value,
        CurrentSituation.YEARS_NO_RESOLUTION.value,
        CurrentSituation.RECOVERING.value,
    }
)

COMPREHENSIVE_SUPPORT = frozenset(
    {
        PreferredSupport.COMPREHENSIVE_TESTING.value,
        PreferredSupport.ONGOING_SUPPORT.value,
        PreferredSupport.FULL_SERVICE_PARTNERSHIP.value,
    }
)

CONSULTATION_SUPPORT = frozenset(
    {
        PreferredSupport.ONE_TIME_CONSULT.value,
        PreferredSupport.COMPREHENSIVE_TESTING.value,
    }
)


def _value(data: Any, name: str) -> str:
    raw = data[name] if isinstance(data, dict) else getattr(data, name)
    return raw.value if hasattr(raw, "value") else raw


def determine_qualification_level(data: Any, score: int) -> QualificationLevel:
    """
    Classify a submission as a high, medium or low priority lead.

    ``data`` may be a validated input model, a stored row or a plain dict;
    only ``current_situation`` and ``preferred_support`` are read.
    """
    situation = _value(data, "current_situation")
    support = _value(data, "preferred_support")

    if score < 60 and support in COMPREHENSIVE_SUPPORT and situation in CHRONIC_SITUATIONS:
        return QualificationLevel.HIGH
    if 60 <= score < 80 and support in CONSULTATION_SUPPORT:
        return QualificationLevel.MEDIUM
    return QualificationLevel.LOW


def build_recommendation(level: QualificationLevel, score: int) -> NextStepRecommendation:
    if level == QualificationLevel.HIGH:
        return NextStepRecommendation(
            title="Private Naturopathic Consultation + Oligoscan Testing",
            summary=(
                "Your assessment suggests layered root-cause factors. A comprehensive consultation "
                "coupled with mineral and heavy metal analysis will fast-track clarity."
            ),
            bullets=[
                "90-minute Initial Naturopathy Consultation ($180)",
                "Oligoscan Mineral & Heavy Metal Analysis ($120)",
                "Personalized treatment roadmap and priority protocol",
                "Custom herbal formulation if appropriate",
            ],
            primary_cta=CallToAction("Book Your Consultation", "/booking"),
            secondary_cta=CallToAction("Explore Our Services", "/practitioner"),
        )

    if level == QualificationLevel.MEDIUM:
        return NextStepRecommendation(
            title="Initial Naturopathy Consultation",
            summary=(
                "Let's go deeper into the symptoms you flagged and create a personalized plan you "
                "can execute confidently."
            ),
            bullets=[
                "90-minute Initial Consultation ($180)",
                "Comprehensive history & symptom review",
                "Targeted recommendations for nutrition, herbs, and lifestyle",
                "Testing options available if needed",
            ],
            primary_cta=CallToAction("Schedule Your Appointment", "/booking"),
            secondary_cta=CallToAction("Download Our Free Gut Guide", "/wellness"),
        )

    if score >= 80:
        summary = (
            "You are on a solid path. Continue fine-tuning with our trusted resources until you are "
            "ready for bespoke support."
        )
    else:
        summary = (
            "Build confidence with foundational education before diving into deeper work. These "
            "resources will help you establish momentum."
        )

    return NextStepRecommendation(
        title="Start with Educational Resources",
        summary=summary,
        bullets=[
            "Free 7-Day Gut Reset Guide",
            "Video: Understanding Oligoscan Testing",
            "Article: Heavy Metals, The Hidden Health Thieves",
        ],
        primary_cta=CallToAction("Access Free Resources", "/wellness"),
        secondary_cta=CallToAction("Book a Discovery Call", "/practitioner"),
    )
