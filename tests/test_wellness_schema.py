import pytest
from pydantic import ValidationError

from apothecary.schemas import (
    GuidedAssessmentInput,
    OrderCreate,
    WellnessAssessmentInput,
    first_error_message,
    flatten_validation_error,
)


def _wellness_payload(**overrides):
    payload = {
        "name": "Jane Citizen",
        "email": "  Jane@Example.COM ",
        "q1_digestive_issues": "yes",
        "q2_sleep_quality": "no",
        "q3_medications": "sometimes",
        "q4_processed_foods": "no",
        "q5_energy_crashes": "no",
        "q6_water_intake": "yes",
        "q7_toxic_exposure": "no",
        "q8_symptoms": "sometimes",
        "q9_supplements": "no",
        "q10_unresolved_issues": "yes",
        "current_situation": "managing_chronic",
        "primary_goal": "increase_energy",
        "biggest_obstacle": "tried_many_things",
        "preferred_support": "ongoing_support",
    }
    payload.update(overrides)
    return payload


def test_email_is_trimmed_and_lowercased():
    data = WellnessAssessmentInput.model_validate(_wellness_payload())

    assert data.email == "jane@example.com"
    assert data.q1_digestive_issues == "yes"
    assert data.preferred_support == "ongoing_support"


@pytest.mark.parametrize("phone", ["0412 345 678", "+61412345678", "02-9876-5432", "61398765432"])
def test_valid_australian_phone_numbers(phone):
    data = WellnessAssessmentInput.model_validate(_wellness_payload(phone=phone))

    assert data.phone == phone


@pytest.mark.parametrize("phone", ["12345", "0512345678", "+1 415 555 0100"])
def test_invalid_phone_numbers_rejected(phone):
    with pytest.raises(ValidationError) as excinfo:
        WellnessAssessmentInput.model_validate(_wellness_payload(phone=phone))

    assert flatten_validation_error(excinfo.value)["phone"] == ["Use a valid Australian phone number."]


def test_blank_optional_text_becomes_none():
    data = WellnessAssessmentInput.model_validate(
        _wellness_payload(phone="   ", location="", additional_notes="  ", utm_source=42)
    )

    assert data.phone is None
    assert data.location is None
    assert data.additional_notes is None
    assert data.utm_source is None


def test_notes_length_cap():
    with pytest.raises(ValidationError) as excinfo:
        WellnessAssessmentInput.model_validate(_wellness_payload(additional_notes="x" * 1201))

    assert first_error_message(excinfo.value) == "Keep responses under 1200 characters."


def test_short_name_and_missing_answer_reported_per_field():
    payload = _wellness_payload(name="J")
    del payload["q4_processed_foods"]

    with pytest.raises(ValidationError) as excinfo:
        WellnessAssessmentInput.model_validate(payload)

    errors = flatten_validation_error(excinfo.value)
    assert errors["name"] == ["Please enter at least 2 characters."]
    assert "q4_processed_foods" in errors


def test_unknown_answer_value_rejected():
    with pytest.raises(ValidationError):
        WellnessAssessmentInput.model_validate(_wellness_payload(q2_sleep_quality="maybe"))


def _guided_payload(**overrides):
    payload = {
        "primary_concern": "Trouble falling asleep most nights",
        "goals": ["sleep"],
        "pregnancy_status": "not_pregnant",
        "stimulant_sensitivity": "medium",
        "sleep_quality": "wired",
    }
    payload.update(overrides)
    return payload


def test_guided_defaults_for_optional_lists():
    data = GuidedAssessmentInput.model_validate(_guided_payload())

    assert data.medications == []
    assert data.allergies == []
    assert data.sensitivities == []
    assert data.taste_preferences == []


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"primary_concern": "too short"}, "Please describe your primary concern in more detail."),
        ({"goals": []}, "Select at least one health goal."),
        (
            {"goals": ["sleep", "stress", "energy", "detox"]},
            "Focus on up to three goals so we can craft a precise blend.",
        ),
        ({"notes": "n" * 501}, "Notes are limited to 500 characters."),
    ],
)
def test_guided_validation_messages(overrides, message):
    with pytest.raises(ValidationError) as excinfo:
        GuidedAssessmentInput.model_validate(_guided_payload(**overrides))

    assert first_error_message(excinfo.value) == message


def test_guided_rejects_too_many_medications():
    with pytest.raises(ValidationError):
        GuidedAssessmentInput.model_validate(_guided_payload(medications=[f"med {i}" for i in range(11)]))


def test_order_item_requires_matching_reference():
    with pytest.raises(ValidationError) as excinfo:
        OrderCreate.model_validate(
            {
                "items": [{"type": "compound", "product_id": 3, "quantity": 1}],
                "shippingAddress": {
                    "fullName": "Jane Citizen",
                    "addressLine1": "1 Herb Lane",
                    "city": "Melbourne",
                    "state": "VIC",
                    "zipCode": "3000",
                    "country": "Australia",
                    "phone": "0412345678",
                },
            }
        )

    assert first_error_message(excinfo.value) == "Compound items require a compound_id."
