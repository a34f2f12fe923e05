from apothecary.assessment.types import BEST_PRACTICE_QUESTIONS
from apothecary.models import Assessment, WellnessAssessment
from apothecary.observability.metrics import counter_total

SUBMISSION = {
    "name": "Jane Citizen",
    "email": " Jane@Example.com ",
    "phone": "0412 345 678",
    "q1_digestive_issues": "no",
    "q2_sleep_quality": "no",
    "q3_medications": "no",
    "q4_processed_foods": "no",
    "q5_energy_crashes": "no",
    "q6_water_intake": "no",
    "q7_toxic_exposure": "no",
    "q8_symptoms": "no",
    "q9_supplements": "no",
    "q10_unresolved_issues": "no",
    "current_situation": "generally_healthy",
    "primary_goal": "optimize_health",
    "biggest_obstacle": "not_enough_time",
    "preferred_support": "self_guided",
    "additional_notes": "<b>Mostly</b> curious",
    "utm_source": "instagram",
}


def _submit(client, headers=None, **overrides):
    body = dict(SUBMISSION)
    body.update(overrides)
    return client.post("/api/assessment/submit", json=body, headers=headers or {})


def test_questions_are_served(client):
    body = client.get("/api/assessment/questions").get_json()

    assert len(body["best_practice"]) == 10
    assert body["best_practice"][0]["id"] == "q1_digestive_issues"
    assert [question["name"] for question in body["qualifying"]] == [
        "current_situation",
        "primary_goal",
        "biggest_obstacle",
        "preferred_support",
    ]


def test_submit_then_read_results(client, db_session):
    response = _submit(client)

    assert response.status_code == 201
    public_id = response.get_json()["id"]

    results = client.get(f"/api/assessment/results/{public_id}").get_json()
    assert results["id"] == public_id
    assert results["name"] == "Jane Citizen"
    assert results["score"] == 100
    assert results["category"] == "strong"
    assert results["qualification_level"] == "low"
    assert results["recommended_next_step"]["title"] == "Start with Educational Resources"
    assert results["recommended_next_step"]["summary"].startswith("You are on a solid path")
    assert [insight["status"] for insight in results["insights"]] == ["positive", "positive", "positive"]

    row = db_session.query(WellnessAssessment).filter_by(public_id=public_id).one()
    assert row.email == "jane@example.com"
    assert row.wellness_score == 100
    assert row.additional_notes == "Mostly curious"
    assert row.utm_source == "instagram"
    assert counter_total("wellness_assessments_submitted_total") == 1


def test_high_priority_lead(client):
    overrides = {question: "yes" for question in BEST_PRACTICE_QUESTIONS}
    response = _submit(
        client,
        current_situation="managing_chronic",
        preferred_support="comprehensive_testing",
        **overrides,
    )

    results = client.get(f"/api/assessment/results/{response.get_json()['id']}").get_json()

    assert results["score"] == 0
    assert results["category"] == "needs_attention"
    assert results["qualification_level"] == "high"
    assert results["recommended_next_step"]["primary_cta"] == {
        "label": "Book Your Consultation",
        "href": "/booking",
    }


def test_forwarded_ip_used_when_missing(client, db_session):
    response = _submit(client, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

    row = db_session.query(WellnessAssessment).filter_by(public_id=response.get_json()["id"]).one()
    assert row.ip_address == "203.0.113.7"


def test_supplied_ip_wins_over_forwarded_header(client, db_session):
    response = _submit(client, headers={"X-Forwarded-For": "203.0.113.7"}, ip_address="198.51.100.4")

    row = db_session.query(WellnessAssessment).filter_by(public_id=response.get_json()["id"]).one()
    assert row.ip_address == "198.51.100.4"


def test_oversized_forwarded_ip_is_rejected(client, db_session):
    response = _submit(client, headers={"X-Forwarded-For": "1" * 300 + ", 10.0.0.1"})

    assert response.status_code == 400
    assert response.get_json()["errors"]["ip_address"] == ["Keep responses under 120 characters."]
    assert db_session.query(WellnessAssessment).count() == 0


def test_invalid_submission_lists_field_errors(client, db_session):
    response = _submit(client, email="not-an-email", phone="555-1234", q3_medications="maybe")

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"]
    assert set(body["errors"]) == {"email", "phone", "q3_medications"}
    assert body["errors"]["phone"] == ["Use a valid Australian phone number."]
    assert db_session.query(WellnessAssessment).count() == 0


def test_unknown_results_id_is_404(client, db_session):
    response = client.get("/api/assessment/results/does-not-exist")

    assert response.status_code == 404
    assert response.get_json() == {"error": "Assessment not found"}


def test_track_action_sets_funnel_flags(client, db_session):
    public_id = _submit(client).get_json()["id"]

    for action in ("view", "secondary", "booking"):
        response = client.post("/api/assessment/track-action", json={"id": public_id, "action": action})
        assert response.status_code == 200
        assert response.get_json() == {"success": True}

    db_session.expire_all()
    row = db_session.query(WellnessAssessment).filter_by(public_id=public_id).one()
    assert row.result_viewed is True
    assert row.clicked_cta is True
    assert row.booking_made is True
    assert counter_total("assessment_actions_total") == 3


def test_track_action_validation(client, db_session):
    unknown = client.post("/api/assessment/track-action", json={"id": "missing", "action": "view"})
    bad_action = client.post("/api/assessment/track-action", json={"id": "missing", "action": "share"})

    assert unknown.status_code == 404
    assert unknown.get_json() == {"error": "Assessment not found"}
    assert bad_action.status_code == 400


def test_guided_compound_assessment_requires_login(client, db_session):
    response = client.post("/api/assessments/guided-compound", json={})

    assert response.status_code == 401


def test_guided_compound_assessment_is_stored(client, login, db_session, make_user, herbs):
    user = make_user()
    login(user)

    response = client.post(
        "/api/assessments/guided-compound",
        json={
            "primary_concern": "Trouble switching off after work",
            "goals": ["sleep", "stress"],
            "medications": [" Sertraline ", ""],
            "allergies": [],
            "pregnancy_status": "not_pregnant",
            "stimulant_sensitivity": "medium",
            "sleep_quality": "wired",
        },
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["assessment"]["user_id"] == user.userID
    assert body["assessment"]["type"] == "guided_compound"
    assert body["assessment"]["responses"]["medications"] == ["Sertraline"]
    assert body["recommendations"]["primary_goal"] == "sleep"
    assert [warning["code"] for warning in body["recommendations"]["warnings"]] == ["MEDICATIONS"]

    stored = db_session.query(Assessment).one()
    assert stored.recommendations["primary_goal"] == "sleep"


def test_guided_compound_assessment_validation_message(client, login, make_user):
    login(make_user())

    response = client.post(
        "/api/assessments/guided-compound",
        json={
            "primary_concern": "Too short",
            "goals": ["sleep"],
            "pregnancy_status": "not_pregnant",
            "stimulant_sensitivity": "low",
            "sleep_quality": "rested",
        },
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "Please describe your primary concern in more detail."
