from __future__ import annotations

from apothecary.assessment.types import BEST_PRACTICE_QUESTIONS
from apothecary.models import WellnessAssessment
from apothecary.schemas import WellnessAssessmentInput

_QUALIFYING_FIELDS = ("current_situation", "primary_goal", "biggest_obstacle", "preferred_support")
_OPTIONAL_FIELDS = ("phone", "location", "ip_address", "additional_notes", "utm_source", "utm_medium", "utm_campaign")


def row_to_assessment_input(row: WellnessAssessment) -> WellnessAssessmentInput:
    """Rebuild the validated submission from a stored wellness assessment row."""
    data = {"name": row.name, "email": row.email}
    for field_name in BEST_PRACTICE_QUESTIONS + _QUALIFYING_FIELDS:
        data[field_name] = getattr(row, field_name)
    for field_name in _OPTIONAL_FIELDS:
        value = getattr(row, field_name)
        if value is not None:
            data[field_name] = value
    return WellnessAssessmentInput.model_validate(data)
