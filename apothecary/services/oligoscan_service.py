from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from apothecary.errors import ConflictError, ForbiddenError, NotFoundError, ServiceError
from apothecary.models import Assessment, AssessmentType, Booking, BookingStatus, User
from apothecary.observability import increment_counter, record_event
from apothecary.sanitize import clean_text
from apothecary.schemas import OligoscanAssessmentInput

OLIGOSCAN_BOOKING_TYPE = "oligoscan_assessment"


class OligoscanService:
    """Records a practitioner's Oligoscan findings against the client's booking."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self.logger = logging.getLogger(__name__)

    def record(self, practitioner: User, payload: OligoscanAssessmentInput) -> Assessment:
        booking = (
            self.db.query(Booking)
            .filter(Booking.bookingID == payload.booking_id)
            .with_for_update()
            .first()
        )
        if booking is None:
            raise NotFoundError("Booking not found")
        if booking.booking_type != OLIGOSCAN_BOOKING_TYPE:
            raise ServiceError("Only Oligoscan bookings can receive this assessment")
        if booking.userID != payload.user_id:
            raise ServiceError("Booking does not belong to this client")
        if (
            booking.practitionerID
            and booking.practitionerID != practitioner.userID
            and not practitioner.is_admin
        ):
            raise ForbiddenError("Booking is assigned to another practitioner")

        existing = (
            self.db.query(Assessment.assessmentID)
            .filter(Assessment.type == AssessmentType.OLIGOSCAN, Assessment.bookingID == booking.bookingID)
            .first()
        )
        if existing is not None:
            raise ConflictError("Assessment already recorded for this booking")

        client = self.db.get(User, booking.userID)
        categories = payload.categories.model_dump()
        for category in categories.values():
            category["notes"] = clean_text(category.get("notes"))

        assessment = Assessment(
            userID=booking.userID,
            bookingID=booking.bookingID,
            type=AssessmentType.OLIGOSCAN,
            score=payload.score,
            responses={
                "booking_id": booking.bookingID,
                "summary": clean_text(payload.summary),
                "key_findings": [clean_text(finding) for finding in payload.key_findings],
                "categories": categories,
                "client_name": client.full_name if client else None,
            },
            recommendations=[],
        )
        self.db.add(assessment)
        if booking.status != BookingStatus.COMPLETED:
            booking.status = BookingStatus.COMPLETED
        self.db.commit()

        increment_counter("oligoscan_assessments_total")
        record_event(
            "oligoscan_assessment_recorded",
            {
                "assessment_id": assessment.assessmentID,
                "booking_id": booking.bookingID,
                "practitioner_id": practitioner.userID,
            },
        )
        self.logger.info(
            "Oligoscan assessment %s recorded for booking %s",
            assessment.assessmentID,
            booking.bookingID,
            extra={"practitioner_id": practitioner.userID, "score": payload.score},
        )
        return assessment
