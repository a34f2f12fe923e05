from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from apothecary.compounds import (
    SafetyContext,
    aggregate_safety_severity,
    calculate_compound_price,
    check_formula_safety,
    enforce_type_for_tier,
    normalize_formula,
    resolve_guided_assessment_for_builder,
    validate_formula,
)
from apothecary.compounds.gating import GuidedAssessmentGate
from apothecary.compounds.pricing import price_breakdown_payload
from apothecary.config import Config
from apothecary.errors import ForbiddenError, NotFoundError, ServiceError
from apothecary.models import (
    Assessment,
    AssessmentType,
    Booking,
    BookingStatus,
    Compound,
    CompoundStatus,
    CompoundType,
    User,
)
from apothecary.observability import increment_counter, record_event, timed
from apothecary.sanitize import clean_text
from apothecary.schemas import CompoundPayload

VALID_TIERS = (1, 2, 3)
NAME_MAX_LENGTH = 120


class CompoundService:
    """Prices, safety-checks and stores custom herbal compounds across the three builder tiers."""

    def __init__(self, db_session: Session, config: type[Config] = Config) -> None:
        self.db = db_session
        self.config = config
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_compounds(
        self,
        owner_id: int,
        tier: Optional[int] = None,
        compound_type: Optional[str] = None,
    ) -> List[Compound]:
        query = self.db.query(Compound).filter(Compound.ownerID == owner_id)
        if tier:
            query = query.filter(Compound.tier == tier)
        if compound_type:
            try:
                query = query.filter(Compound.type == CompoundType(compound_type))
            except ValueError:
                raise ServiceError(f"Unknown compound type: {compound_type}")
        return (
            query.order_by(Compound.created_at.desc(), Compound.compoundID.desc())
            .limit(self.config.COMPOUND_LIST_LIMIT)
            .all()
        )

    def guided_gate(self, user_id: int, assessment_id: Optional[int] = None) -> GuidedAssessmentGate:
        return resolve_guided_assessment_for_builder(
            self.db,
            user_id,
            assessment_id=assessment_id,
            max_age_days=self.config.GUIDED_ASSESSMENT_MAX_AGE_DAYS,
        )

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------
    def evaluate(self, user: User, payload: CompoundPayload, preview: bool = False) -> Dict[str, Any]:
        """
        Run the builder pipeline for ``payload`` on behalf of ``user``.

        Preview stops after pricing and safety; otherwise the compound is
        stored as a draft and returned under ``compound``.
        """
        formula_error = validate_formula(payload.formula)
        if formula_error:
            raise ServiceError(formula_error)

        tier = payload.tier
        if not tier:
            raise ServiceError("Tier is required.")
        if tier not in VALID_TIERS:
            raise ServiceError("Tier must be 1, 2 or 3.")

        formula = normalize_formula(payload.formula)
        owner_id = user.userID
        assessment: Optional[Assessment] = None

        if tier == 2:
            assessment = self._load_source_assessment(user, payload.source_assessment_id)

        if tier == 3:
            booking = self._load_source_booking(user, payload.source_booking_id)
            owner_id = booking.userID

        context = self._safety_context(assessment, payload)

        with timed("compound_evaluation_ms", {"tier": tier}):
            breakdown = calculate_compound_price(
                self.db,
                formula,
                tier,
                bottle_volume_ml=self.config.COMPOUND_DEFAULT_BOTTLE_ML,
            )
            issues = check_formula_safety(self.db, formula, context)

        result: Dict[str, Any] = {
            "price_breakdown": price_breakdown_payload(breakdown),
            "safety_issues": [issue.to_dict() for issue in issues],
            "safety_severity": aggregate_safety_severity(issues),
        }

        if preview:
            increment_counter("compound_previews_total", labels={"tier": tier})
            record_event(
                "compound_previewed",
                {"user_id": user.userID, "tier": tier, "price": breakdown.price},
            )
            return result

        name = clean_text(payload.name) or ""
        if len(name) < 3:
            raise ServiceError("Name must be at least 3 characters when saving a compound.")
        if len(name) > NAME_MAX_LENGTH:
            raise ServiceError(f"Name must be at most {NAME_MAX_LENGTH} characters.")

        compound = Compound(
            name=name,
            ownerID=owner_id,
            createdByID=user.userID,
            type=enforce_type_for_tier(tier, payload.type),
            tier=tier,
            formula=formula,
            price=breakdown.price,
            notes=clean_text(payload.notes),
            sourceAssessmentID=payload.source_assessment_id,
            sourceBookingID=payload.source_booking_id,
            status=CompoundStatus.DRAFT,
        )
        self.db.add(compound)
        self.db.commit()

        increment_counter("compounds_saved_total", labels={"tier": tier})
        record_event(
            "compound_saved",
            {"compound_id": compound.compoundID, "owner_id": owner_id, "tier": tier},
        )
        self.logger.info(
            "Compound %s saved",
            compound.compoundID,
            extra={"tier": tier, "owner_id": owner_id, "created_by": user.userID},
        )

        result["compound"] = compound.to_dict()
        return result

    def _load_source_assessment(self, user: User, assessment_id: Optional[int]) -> Assessment:
        if not assessment_id:
            raise ServiceError("Guided compounds require a linked assessment.")
        assessment = (
            self.db.query(Assessment)
            .filter(
                Assessment.assessmentID == assessment_id,
                Assessment.userID == user.userID,
                Assessment.type == AssessmentType.GUIDED_COMPOUND,
            )
            .first()
        )
        if assessment is None:
            raise NotFoundError("Assessment not found")
        return assessment

    def _load_source_booking(self, user: User, booking_id: Optional[int]) -> Booking:
        if not booking_id:
            raise ServiceError("Practitioner compounds must reference a completed booking.")
        booking = self.db.query(Booking).filter(Booking.bookingID == booking_id).first()
        if booking is None:
            raise NotFoundError("Booking not found")
        if booking.practitionerID != user.userID:
            raise ForbiddenError("Forbidden")
        if booking.status != BookingStatus.COMPLETED:
            raise ServiceError("Only completed consultations can receive practitioner compounds.")
        return booking

    @staticmethod
    def _safety_context(assessment: Optional[Assessment], payload: CompoundPayload) -> SafetyContext:
        if assessment is not None:
            return SafetyContext.from_mapping(assessment.responses)
        if payload.context is not None:
            return SafetyContext.from_mapping(payload.context.model_dump())
        return SafetyContext()
