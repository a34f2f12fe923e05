from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from apothecary.compounds import generate_guided_recommendations
from apothecary.models import Assessment, AssessmentType
from apothecary.observability import increment_counter, record_event
from apothecary.sanitize import clean_text
from apothecary.schemas import GuidedAssessmentInput


class GuidedAssessmentService:
    """Turns the guided compound questionnaire into a stored assessment with starter herbs."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self.logger = logging.getLogger(__name__)

    def create(self, user_id: int, payload: GuidedAssessmentInput) -> Dict[str, Any]:
        recommendations = generate_guided_recommendations(payload, self.db)

        responses = payload.model_dump()
        responses["primary_concern"] = clean_text(payload.primary_concern)
        responses["notes"] = clean_text(payload.notes)
        responses["medications"] = [entry.strip() for entry in payload.medications if entry.strip()]
        responses["allergies"] = [entry.strip() for entry in payload.allergies if entry.strip()]

        assessment = Assessment(
            userID=user_id,
            type=AssessmentType.GUIDED_COMPOUND,
            responses=responses,
            recommendations=recommendations,
        )
        self.db.add(assessment)
        self.db.commit()

        increment_counter("guided_assessments_total")
        record_event(
            "guided_assessment_created",
            {
                "assessment_id": assessment.assessmentID,
                "user_id": user_id,
                "primary_goal": recommendations["primary_goal"],
            },
        )
        self.logger.info(
            "Guided assessment %s created",
            assessment.assessmentID,
            extra={"user_id": user_id, "goals": list(payload.goals)},
        )
        return {"assessment": assessment.to_dict(), "recommendations": recommendations}
