from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from apothecary.config import Config
from apothecary.models import Assessment, AssessmentType


@dataclass
class GuidedAssessmentGate:
    assessment: Optional[Assessment]
    is_expired: bool
    max_age_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessment": self.assessment.to_dict() if self.assessment else None,
            "is_expired": self.is_expired,
            "max_age_days": self.max_age_days,
        }


def _cutoff(max_age_days: int, now: Optional[datetime] = None) -> datetime:
    # Stored timestamps are naive UTC
    now = now or datetime.now(timezone.utc)
    return (now - timedelta(days=max_age_days)).replace(tzinfo=None)


def _guided_query(session: Session, user_id: int):
    return session.query(Assessment).filter(
        Assessment.userID == user_id,
        Assessment.type == AssessmentType.GUIDED_COMPOUND,
    )


def fetch_guided_assessment_by_id(session: Session, user_id: int, assessment_id: int) -> Optional[Assessment]:
    return _guided_query(session, user_id).filter(Assessment.assessmentID == assessment_id).first()


def fetch_latest_guided_assessment(
    session: Session,
    user_id: int,
    max_age_days: Optional[int] = None,
) -> Optional[Assessment]:
    max_age_days = Config.GUIDED_ASSESSMENT_MAX_AGE_DAYS if max_age_days is None else max_age_days
    return (
        _guided_query(session, user_id)
        .filter(Assessment.created_at >= _cutoff(max_age_days))
        .order_by(Assessment.created_at.desc())
        .first()
    )


def resolve_guided_assessment_for_builder(
    session: Session,
    user_id: int,
    assessment_id: Optional[int] = None,
    max_age_days: Optional[int] = None,
) -> GuidedAssessmentGate:
    """Find the guided assessment that unlocks the tier-2 builder and report whether it is stale."""
    max_age_days = Config.GUIDED_ASSESSMENT_MAX_AGE_DAYS if max_age_days is None else max_age_days

    assessment = None
    if assessment_id:
        assessment = fetch_guided_assessment_by_id(session, user_id, assessment_id)
    if assessment is None:
        assessment = fetch_latest_guided_assessment(session, user_id, max_age_days)

    if assessment is None:
        return GuidedAssessmentGate(assessment=None, is_expired=True, max_age_days=max_age_days)

    created_at = assessment.created_at
    if created_at is not None and created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)
    is_expired = created_at is None or created_at < _cutoff(max_age_days)

    return GuidedAssessmentGate(assessment=assessment, is_expired=is_expired, max_age_days=max_age_days)
