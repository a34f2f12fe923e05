from datetime import datetime, timedelta, timezone

import pytest

from apothecary.compounds import enforce_type_for_tier, resolve_guided_assessment_for_builder, validate_formula
from apothecary.models import Assessment, AssessmentType, CompoundType


@pytest.mark.parametrize(
    "formula, message",
    [
        (None, "Formula must contain at least one herb."),
        ([], "Formula must contain at least one herb."),
        ({"product_id": 1}, "Formula must contain at least one herb."),
        ([{"percentage": 100}], "Each herb must include a product_id."),
        ([{"product_id": 1, "percentage": "100"}], "Each herb must include a numeric percentage."),
        ([{"product_id": 1, "percentage": True}], "Each herb must include a numeric percentage."),
        ([{"product_id": 1, "percentage": float("nan")}], "Each herb must include a numeric percentage."),
        ([{"product_id": 1, "percentage": 0}, {"product_id": 2, "percentage": 100}],
         "Herb percentages must be greater than zero."),
        ([{"product_id": 1, "percentage": 60}, {"product_id": 2, "percentage": 39}],
         "Formula percentages must add up to 100."),
    ],
)
def test_validate_formula_messages(formula, message):
    assert validate_formula(formula) == message


def test_validate_formula_tolerates_rounding():
    formula = [
        {"product_id": 1, "percentage": 33.3},
        {"product_id": 2, "percentage": 33.3},
        {"product_id": 3, "percentage": 33.3},
    ]

    assert validate_formula(formula) is None


def test_enforce_type_for_tier():
    assert enforce_type_for_tier(1, "practitioner") == CompoundType.PRESET
    assert enforce_type_for_tier(2, None) == CompoundType.GUIDED
    assert enforce_type_for_tier(3, None) == CompoundType.PRACTITIONER
    assert enforce_type_for_tier(3, "preset") == CompoundType.PRESET


def _guided_assessment(db_session, user, days_old):
    assessment = Assessment(
        userID=user.userID,
        type=AssessmentType.GUIDED_COMPOUND,
        responses={"pregnancy_status": "not_pregnant", "medications": [], "allergies": []},
        recommendations={},
        created_at=datetime.now(timezone.utc) - timedelta(days=days_old),
    )
    db_session.add(assessment)
    db_session.commit()
    return assessment


def test_gate_without_assessment_is_expired(db_session, make_user):
    user = make_user()

    gate = resolve_guided_assessment_for_builder(db_session, user.userID)

    assert gate.assessment is None
    assert gate.is_expired is True
    assert gate.max_age_days == 30


def test_gate_uses_latest_recent_assessment(db_session, make_user):
    user = make_user()
    _guided_assessment(db_session, user, days_old=10)
    latest = _guided_assessment(db_session, user, days_old=2)

    gate = resolve_guided_assessment_for_builder(db_session, user.userID)

    assert gate.assessment.assessmentID == latest.assessmentID
    assert gate.is_expired is False


def test_gate_reports_stale_assessment_requested_by_id(db_session, make_user):
    user = make_user()
    stale = _guided_assessment(db_session, user, days_old=45)

    gate = resolve_guided_assessment_for_builder(db_session, user.userID, assessment_id=stale.assessmentID)

    assert gate.assessment.assessmentID == stale.assessmentID
    assert gate.is_expired is True


def test_gate_ignores_other_users_assessments(db_session, make_user):
    owner = make_user()
    other = make_user()
    foreign = _guided_assessment(db_session, owner, days_old=1)

    gate = resolve_guided_assessment_for_builder(db_session, other.userID, assessment_id=foreign.assessmentID)

    assert gate.assessment is None
    assert gate.is_expired is True
