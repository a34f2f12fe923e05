"""Pydantic models for validating request payloads."""
from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    ValidationError,
    field_validator,
    model_validator,
)

from apothecary.assessment.types import (
    Answer,
    BiggestObstacle,
    CurrentSituation,
    PreferredSupport,
    PrimaryGoal,
)
from apothecary.config import Config
from apothecary.sanitize import clean_text

AUSTRALIAN_PHONE_RE = re.compile(r"^(?:\+?61|0)[2-478](?:[ \-]?[0-9]){8}$")


def _optional_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _check_length(value: Optional[str], limit: int) -> Optional[str]:
    if value is not None and len(value) > limit:
        raise ValueError(f"Keep responses under {limit} characters.")
    return value


# Wellness self-assessment

class WellnessAssessmentInput(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str
    email: EmailStr
    phone: Optional[str] = None
    location: Optional[str] = None
    ip_address: Optional[str] = None

    q1_digestive_issues: Answer
    q2_sleep_quality: Answer
    q3_medications: Answer
    q4_processed_foods: Answer
    q5_energy_crashes: Answer
    q6_water_intake: Answer
    q7_toxic_exposure: Answer
    q8_symptoms: Answer
    q9_supplements: Answer
    q10_unresolved_issues: Answer

    current_situation: CurrentSituation
    primary_goal: PrimaryGoal
    biggest_obstacle: BiggestObstacle
    preferred_support: PreferredSupport

    additional_notes: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if len(v) < 2:
            raise ValueError("Please enter at least 2 characters.")
        if len(v) > 80:
            raise ValueError("Keep names under 80 characters.")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v):
        v = _optional_text(v)
        if v is not None and not AUSTRALIAN_PHONE_RE.match(v):
            raise ValueError("Use a valid Australian phone number.")
        return v

    @field_validator("location", "ip_address", "utm_source", "utm_medium", "utm_campaign", mode="before")
    @classmethod
    def clean_short_text(cls, v):
        return _check_length(_optional_text(v), 120)

    @field_validator("additional_notes", mode="before")
    @classmethod
    def clean_notes(cls, v):
        return _check_length(_optional_text(v), 1200)


class TrackActionInput(BaseModel):
    id: str = Field(min_length=1)
    action: Literal["view", "cta", "secondary", "booking"]


# Guided compound questionnaire

HealthGoal = Literal["sleep", "stress", "digestion", "immunity", "energy", "detox"]


class GuidedAssessmentInput(BaseModel):
    primary_concern: str
    goals: List[HealthGoal]
    medications: List[str] = Field(default_factory=list, max_length=10)
    allergies: List[str] = Field(default_factory=list, max_length=10)
    pregnancy_status: Literal["not_pregnant", "pregnant", "nursing", "unsure"]
    sensitivities: List[
        Literal["avoid_bitter", "avoid_alcohol", "sensitive_stimulants", "sensitive_digestive"]
    ] = Field(default_factory=list, max_length=4)
    taste_preferences: List[Literal["sweet", "bitter", "floral", "spicy", "earthy"]] = Field(
        default_factory=list, max_length=5
    )
    stimulant_sensitivity: Literal["low", "medium", "high"]
    sleep_quality: Literal["rested", "tired", "wired"]
    notes: Optional[str] = None

    @field_validator("primary_concern")
    @classmethod
    def validate_primary_concern(cls, v):
        if len(v) < 10:
            raise ValueError("Please describe your primary concern in more detail.")
        if len(v) > 500:
            raise ValueError("Keep descriptions under 500 characters.")
        return v

    @field_validator("goals")
    @classmethod
    def validate_goals(cls, v):
        if not v:
            raise ValueError("Select at least one health goal.")
        if len(v) > 3:
            raise ValueError("Focus on up to three goals so we can craft a precise blend.")
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Notes are limited to 500 characters.")
        return v


# Compounds

class SafetyContextInput(BaseModel):
    pregnancy_status: Optional[str] = None
    medications: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)


class CompoundPayload(BaseModel):
    name: Optional[str] = None
    # Formula shape is checked by validate_formula so its messages reach the client
    formula: Any = None
    tier: Optional[int] = None
    type: Optional[Literal["preset", "guided", "practitioner"]] = None
    source_assessment_id: Optional[int] = None
    source_booking_id: Optional[int] = None
    notes: Optional[str] = None
    context: Optional[SafetyContextInput] = None


class BatchCreate(BaseModel):
    compound_id: int
    batch_code: str = Field(min_length=1, max_length=64)
    total_volume_ml: float
    expiry_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("total_volume_ml")
    @classmethod
    def validate_volume(cls, v):
        if not math.isfinite(v) or v <= 0:
            raise ValueError("total_volume_ml must be a positive number.")
        return v


class DispensationCreate(BaseModel):
    batch_id: int
    user_id: int
    volume_ml: float
    order_id: Optional[int] = None

    @field_validator("volume_ml")
    @classmethod
    def validate_volume(cls, v):
        if not math.isfinite(v) or v <= 0:
            raise ValueError("volume_ml must be a positive number.")
        return v


# Orders

class ShippingAddress(BaseModel):
    fullName: str = Field(min_length=1, max_length=100)
    addressLine1: str = Field(min_length=1, max_length=200)
    addressLine2: Optional[str] = Field(default=None, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=50)
    zipCode: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=1, max_length=20)


class OrderItemInput(BaseModel):
    type: Literal["product", "compound"] = "product"
    product_id: Optional[int] = None
    compound_id: Optional[int] = None
    quantity: int = Field(gt=0)

    @model_validator(mode="after")
    def check_reference(self):
        if self.type == "product" and self.product_id is None:
            raise ValueError("Product items require a product_id.")
        if self.type == "compound" and self.compound_id is None:
            raise ValueError("Compound items require a compound_id.")
        return self


class OrderCreate(BaseModel):
    items: List[OrderItemInput] = Field(min_length=1, max_length=Config.MAX_ORDER_ITEMS)
    shippingAddress: ShippingAddress


# Product reviews

def _check_rating(value: Any) -> Any:
    if value is None:
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Rating must be a number")
    if not float(value).is_integer():
        raise ValueError("Rating must be an integer")
    if value < 1:
        raise ValueError("Rating must be at least 1")
    if value > 5:
        raise ValueError("Rating must be at most 5")
    return int(value)


def _check_review_text(value: Any, label: str, minimum: int, maximum: int) -> Any:
    if value is None or not isinstance(value, str):
        return value
    cleaned = clean_text(value) or ""
    if len(cleaned) < minimum:
        raise ValueError(f"{label} must be at least {minimum} characters")
    if len(cleaned) > maximum:
        raise ValueError(f"{label} must be at most {maximum} characters")
    return cleaned


class ReviewCreate(BaseModel):
    rating: int
    title: str
    comment: str

    @field_validator("rating", mode="before")
    @classmethod
    def validate_rating(cls, v):
        return _check_rating(v)

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return _check_review_text(v, "Title", 5, 100)

    @field_validator("comment", mode="before")
    @classmethod
    def validate_comment(cls, v):
        return _check_review_text(v, "Comment", 10, 1000)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    title: Optional[str] = None
    comment: Optional[str] = None

    @field_validator("rating", mode="before")
    @classmethod
    def validate_rating(cls, v):
        return _check_rating(v)

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return _check_review_text(v, "Title", 5, 100)

    @field_validator("comment", mode="before")
    @classmethod
    def validate_comment(cls, v):
        return _check_review_text(v, "Comment", 10, 1000)

    @model_validator(mode="after")
    def check_has_changes(self):
        if self.rating is None and self.title is None and self.comment is None:
            raise ValueError("Provide a rating, title or comment to update.")
        return self


class ReviewVoteInput(BaseModel):
    is_helpful: StrictBool


# Newsletter

class NewsletterSubscribeInput(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    tags: List[str] = Field(default_factory=list, max_length=10)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if len(v) > 190:
                raise ValueError("Email is too long")
        return v

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        v = _optional_text(v)
        if v is None:
            return None
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        if len(v) > 80:
            raise ValueError("Name must be 80 characters or less")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        tags = [tag.strip() for tag in v]
        if any(not tag for tag in tags):
            raise ValueError("Tags cannot be blank")
        return list(dict.fromkeys(tags))


# Oligoscan

class OligoscanMinerals(BaseModel):
    status: Literal["optimal", "borderline", "depleted", "excess"]
    notes: Optional[str] = Field(default=None, max_length=400)


class OligoscanHeavyMetals(BaseModel):
    status: Literal["none", "mild_burden", "moderate_burden", "high_burden"]
    notes: Optional[str] = Field(default=None, max_length=400)


class OligoscanVitamins(BaseModel):
    status: Literal["optimal", "borderline", "depleted"]
    notes: Optional[str] = Field(default=None, max_length=400)


class OligoscanCategories(BaseModel):
    minerals: OligoscanMinerals
    heavy_metals: OligoscanHeavyMetals
    vitamins: OligoscanVitamins


class OligoscanAssessmentInput(BaseModel):
    booking_id: int
    user_id: int
    score: float
    summary: str
    key_findings: List[str]
    categories: OligoscanCategories

    @field_validator("score")
    @classmethod
    def validate_score(cls, v):
        if not math.isfinite(v) or v < 0:
            raise ValueError("Minimum score is 0")
        if v > 10:
            raise ValueError("Maximum score is 10")
        return v

    @field_validator("summary")
    @classmethod
    def validate_summary(cls, v):
        v = v.strip()
        if len(v) < 20:
            raise ValueError("Please provide a short summary of the findings.")
        if len(v) > 1200:
            raise ValueError("Summary must be under 1200 characters.")
        return v

    @field_validator("key_findings")
    @classmethod
    def validate_key_findings(cls, v):
        findings = [finding.strip() for finding in v]
        if len(findings) < 3:
            raise ValueError("Provide at least three key findings.")
        if len(findings) > 6:
            raise ValueError("Limit to six key findings.")
        for finding in findings:
            if len(finding) < 3:
                raise ValueError("Key findings should be at least a few words.")
            if len(finding) > 180:
                raise ValueError("Keep key findings brief.")
        return findings


# Error flattening

_VALUE_ERROR_PREFIX = "Value error, "


def _clean_message(message: str) -> str:
    if message.startswith(_VALUE_ERROR_PREFIX):
        return message[len(_VALUE_ERROR_PREFIX):]
    return message


def flatten_validation_error(exc: ValidationError) -> Dict[str, List[str]]:
    """Group validation messages by dotted field path."""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        errors.setdefault(field, []).append(_clean_message(error.get("msg", "Invalid value")))
    return errors


def first_error_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request payload"
    return _clean_message(errors[0].get("msg", "Invalid request payload"))
