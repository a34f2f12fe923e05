"""
Wellness score calculation.

Each best-practice answer earns points (``no`` is the healthy answer) and the
total is expressed as a 0-100 percentage. Independently, three insight groups
sum a per-answer concern weight; a group reaching 1.5 is flagged ``focus``.
"""
from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from apothecary.assessment.types import (
    BEST_PRACTICE_QUESTIONS,
    InsightCopy,
    ScoreCategory,
    WellnessScoreSummary,
)

ANSWER_POINTS: Dict[str, int] = {"yes": 0, "sometimes": 5, "no": 10}
MAX_POINTS_PER_QUESTION = 10

CONCERN_WEIGHTS: Dict[str, float] = {"yes": 1.0, "sometimes": 0.5, "no": 0.0}
FOCUS_THRESHOLD = 1.5

STRONG_THRESHOLD = 80
MODERATE_THRESHOLD = 50

GUT_QUESTIONS = ("q1_digestive_issues", "q3_medications", "q4_processed_foods", "q9_supplements")
TOXIC_QUESTIONS = ("q7_toxic_exposure", "q8_symptoms", "q9_supplements")
LIFESTYLE_QUESTIONS = ("q2_sleep_quality", "q5_energy_crashes", "q6_water_intake", "q10_unresolved_issues")


def _answer(answers: Mapping[str, str], question_id: str) -> str:
    value = answers[question_id]
    return value.value if hasattr(value, "value") else value


def determine_group_flag(answers: Mapping[str, str], question_ids: Sequence[str]) -> str:
    total = sum(CONCERN_WEIGHTS[_answer(answers, qid)] for qid in question_ids)
    return "focus" if total >= FOCUS_THRESHOLD else "stable"


def categorize_score(score: int) -> ScoreCategory:
    if score >= STRONG_THRESHOLD:
        return ScoreCategory.STRONG
    if score >= MODERATE_THRESHOLD:
        return ScoreCategory.MODERATE
    return ScoreCategory.NEEDS_ATTENTION


def calculate_wellness_score(answers: Mapping[str, str]) -> WellnessScoreSummary:
    total_points = sum(ANSWER_POINTS[_answer(answers, qid)] for qid in BEST_PRACTICE_QUESTIONS)
    max_points = len(BEST_PRACTICE_QUESTIONS) * MAX_POINTS_PER_QUESTION
    # Half-up rounding; round() would send 52.5 to 52
    score = int(total_points * 100 / max_points + 0.5)

    return WellnessScoreSummary(
        score=score,
        category=categorize_score(score),
        insight_flags={
            "gut": determine_group_flag(answers, GUT_QUESTIONS),
            "toxic": determine_group_flag(answers, TOXIC_QUESTIONS),
            "lifestyle": determine_group_flag(answers, LIFESTYLE_QUESTIONS),
        },
    )


_INSIGHT_COPY: Dict[str, Dict[str, InsightCopy]] = {
    "gut": {
        "focus": InsightCopy(
            title="Gut Health Analysis",
            status="attention",
            summary=(
                "Your digestive system may be compromised. Patterns point to potential dysbiosis, "
                "inflammation, or slowed digestive function that needs targeted support."
            ),
        ),
        "stable": InsightCopy(
            title="Gut Health Analysis",
            status="positive",
            summary=(
                "Your gut health appears relatively stable. Strategic fine-tuning could still unlock "
                "better nutrient absorption and less reactivity."
            ),
        ),
    },
    "toxic": {
        "focus": InsightCopy(
            title="Toxic Load & Mineral Status",
            status="attention",
            summary=(
                "Your exposure patterns and symptoms suggest a higher likelihood of heavy metal burden "
                "or mineral depletion. Cellular testing like Oligoscan can reveal exact imbalances."
            ),
        ),
        "stable": InsightCopy(
            title="Toxic Load & Mineral Status",
            status="positive",
            summary=(
                "Your toxic load appears manageable, though routine monitoring and mineral "
                "replenishment will help prevent future accumulation."
            ),
        ),
    },
    "lifestyle": {
        "focus": InsightCopy(
            title="Lifestyle & Energy Patterns",
            status="attention",
            summary=(
                "Daily rhythms may be draining your energy reserves. Dialing in sleep, hydration, and "
                "nervous-system support could unlock dramatic improvements."
            ),
        ),
        "stable": InsightCopy(
            title="Lifestyle & Energy Patterns",
            status="positive",
            summary=(
                "Your lifestyle foundations are largely supportive. Continue refining stress, sleep, "
                "and hydration habits to protect your momentum."
            ),
        ),
    },
}


def insight_copy(flags: Mapping[str, str]) -> List[InsightCopy]:
    """Return gut, toxic and lifestyle insight copy, in that order."""
    return [_INSIGHT_COPY[group][flags[group]] for group in ("gut", "toxic", "lifestyle")]


SCORE_CATEGORY_LABELS: Dict[ScoreCategory, Dict[str, str]] = {
    ScoreCategory.STRONG: {
        "title": "Strong Foundation",
        "subtitle": "Excellent! You have resilient health foundations and can focus on optimization.",
    },
    ScoreCategory.MODERATE: {
        "title": "Room for Improvement",
        "subtitle": "Great progress so far, but there are clear opportunities to strengthen your baseline.",
    },
    ScoreCategory.NEEDS_ATTENTION: {
        "title": "Urgent Attention Needed",
        "subtitle": "Your body is sending clear signals it needs support. Let's create a plan quickly.",
    },
}
