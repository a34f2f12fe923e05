from __future__ import annotations

from typing import Any, Dict

from apothecary.assessment.qualification import build_recommendation, determine_qualification_level
from apothecary.assessment.scoring import calculate_wellness_score, insight_copy
from apothecary.assessment.types import BEST_PRACTICE_QUESTIONS, AssessmentResultPayload


def _read(data: Any, name: str) -> Any:
    value = data[name] if isinstance(data, dict) else getattr(data, name)
    return value.value if hasattr(value, "value") else value


def extract_best_practice_answers(data: Any) -> Dict[str, str]:
    return {question: _read(data, question) for question in BEST_PRACTICE_QUESTIONS}


def build_result_payload(assessment_id: str, data: Any) -> AssessmentResultPayload:
    """Score, qualify and assemble everything the results page renders."""
    summary = calculate_wellness_score(extract_best_practice_answers(data))
    level = determine_qualification_level(data, summary.score)

    return AssessmentResultPayload(
        id=assessment_id,
        name=_read(data, "name"),
        score=summary.score,
        category=summary.category,
        insight_flags=summary.insight_flags,
        qualification_level=level,
        recommended_next_step=build_recommendation(level, summary.score),
        insights=insight_copy(summary.insight_flags),
    )
