from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from apothecary.assessment import AssessmentResultPayload, build_result_payload
from apothecary.assessment.adapter import row_to_assessment_input
from apothecary.errors import NotFoundError
from apothecary.models import WellnessAssessment
from apothecary.observability import increment_counter, record_event
from apothecary.sanitize import clean_text
from apothecary.schemas import WellnessAssessmentInput

# Tracked results-page action -> boolean funnel column
ACTION_FLAGS = {
    "view": "result_viewed",
    "cta": "clicked_cta",
    "secondary": "clicked_cta",
    "booking": "booking_made",
}


class WellnessAssessmentService:
    """Stores wellness self-assessments, serves their results and tracks the follow-up funnel."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self.logger = logging.getLogger(__name__)

    def submit(self, data: WellnessAssessmentInput) -> WellnessAssessment:
        fields = data.model_dump()
        fields["additional_notes"] = clean_text(fields.get("additional_notes"))

        row = WellnessAssessment(**fields)
        # Scoring needs only the answers, so the row's public id can be assigned afterwards
        result = build_result_payload("", data)
        row.wellness_score = result.score
        row.score_category = result.category.value
        row.qualification_level = result.qualification_level.value
        row.recommended_next_step = result.recommended_next_step.to_dict()
        row.completed_at = datetime.now(timezone.utc)

        self.db.add(row)
        self.db.commit()

        increment_counter(
            "wellness_assessments_submitted_total",
            labels={"qualification_level": row.qualification_level},
        )
        record_event(
            "wellness_assessment_submitted",
            {
                "assessment_id": row.public_id,
                "score": row.wellness_score,
                "qualification_level": row.qualification_level,
                "utm_source": row.utm_source,
            },
        )
        self.logger.info(
            "Wellness assessment %s submitted",
            row.public_id,
            extra={"score": row.wellness_score, "qualification_level": row.qualification_level},
        )
        return row

    def get_by_public_id(self, public_id: str) -> Optional[WellnessAssessment]:
        return self.db.query(WellnessAssessment).filter(WellnessAssessment.public_id == public_id).first()

    def get_results(self, public_id: str) -> AssessmentResultPayload:
        row = self.get_by_public_id(public_id)
        if row is None:
            raise NotFoundError("Assessment not found")
        return build_result_payload(row.public_id, row_to_assessment_input(row))

    def track_action(self, public_id: str, action: str) -> Tuple[bool, str, Optional[WellnessAssessment]]:
        column = ACTION_FLAGS.get(action)
        if column is None:
            return False, "Invalid action", None

        row = self.get_by_public_id(public_id)
        if row is None:
            return False, "Assessment not found", None

        if not getattr(row, column):
            setattr(row, column, True)
            self.db.commit()

        increment_counter("assessment_actions_total", labels={"action": action})
        record_event("assessment_action_tracked", {"assessment_id": public_id, "action": action})
        return True, "Action recorded", row
