"""Wellness self-assessment scoring and lead qualification."""

from .types import (
    BEST_PRACTICE_QUESTIONS,
    AssessmentResultPayload,
    InsightCopy,
    NextStepRecommendation,
    QualificationLevel,
    ScoreCategory,
    WellnessScoreSummary,
)
from .scoring import SCORE_CATEGORY_LABELS, calculate_wellness_score, insight_copy
from .qualification import build_recommendation, determine_qualification_level
from .results import build_result_payload, extract_best_practice_answers

__all__ = [
    "BEST_PRACTICE_QUESTIONS",
    "AssessmentResultPayload",
    "InsightCopy",
    "NextStepRecommendation",
    "QualificationLevel",
    "ScoreCategory",
    "WellnessScoreSummary",
    "SCORE_CATEGORY_LABELS",
    "calculate_wellness_score",
    "insight_copy",
    "build_recommendation",
    "determine_qualification_level",
    "build_result_payload",
    "extract_best_practice_answers",
]
