from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from apothecary.config import Config
from apothecary.errors import NotFoundError, ServiceError
from apothecary.models import BatchStatus, Compound, CompoundBatch, CompoundDispensation, User, to_ml
from apothecary.observability import increment_counter, record_event
from apothecary.sanitize import clean_text
from apothecary.schemas import BatchCreate, DispensationCreate

DEFAULT_BATCH_LIMIT = 50


def _format_ml(value: Decimal) -> str:
    return f"{value.normalize():f}"


class BatchService:
    """Practitioner record keeping for prepared compound batches and what was dispensed from them."""

    def __init__(self, db_session: Session, config: type[Config] = Config) -> None:
        self.db = db_session
        self.config = config
        self.logger = logging.getLogger(__name__)

    def list_batches(self, compound_id: Optional[int] = None, limit: Optional[int] = None) -> List[CompoundBatch]:
        limit = min(max(limit or DEFAULT_BATCH_LIMIT, 1), self.config.BATCH_LIST_LIMIT)
        query = self.db.query(CompoundBatch)
        if compound_id:
            query = query.filter(CompoundBatch.compoundID == compound_id)
        return (
            query.order_by(CompoundBatch.prepared_at.desc(), CompoundBatch.batchID.desc())
            .limit(limit)
            .all()
        )

    def create_batch(self, practitioner: User, payload: BatchCreate) -> CompoundBatch:
        compound = self.db.query(Compound).filter(Compound.compoundID == payload.compound_id).first()
        if compound is None:
            raise NotFoundError("Compound not found")

        total = to_ml(payload.total_volume_ml)
        if total <= 0:
            raise ServiceError("total_volume_ml must be a positive number.")
        if payload.expiry_date is not None and payload.expiry_date < date.today():
            raise ServiceError("expiry_date cannot be in the past.")

        batch = CompoundBatch(
            compoundID=compound.compoundID,
            batch_code=payload.batch_code.strip(),
            total_volume_ml=total,
            expiry_date=payload.expiry_date,
            notes=clean_text(payload.notes),
            status=BatchStatus.PREPARED,
            preparedByID=practitioner.userID,
        )
        self.db.add(batch)
        self.db.commit()

        increment_counter("compound_batches_created_total")
        record_event(
            "batch_created",
            {"batch_id": batch.batchID, "compound_id": compound.compoundID, "prepared_by": practitioner.userID},
        )
        self.logger.info(
            "Batch %s prepared for compound %s",
            batch.batch_code,
            compound.compoundID,
            extra={"batch_id": batch.batchID, "total_volume_ml": payload.total_volume_ml},
        )
        return batch

    def list_dispensations(
        self,
        batch_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[CompoundDispensation]:
        query = self.db.query(CompoundDispensation)
        if batch_id:
            query = query.filter(CompoundDispensation.batchID == batch_id)
        if user_id:
            query = query.filter(CompoundDispensation.userID == user_id)
        return (
            query.order_by(CompoundDispensation.dispensed_at.desc(), CompoundDispensation.dispensationID.desc())
            .limit(self.config.BATCH_LIST_LIMIT)
            .all()
        )

    def record_dispensation(self, practitioner: User, payload: DispensationCreate) -> Dict[str, Any]:
        batch = (
            self.db.query(CompoundBatch)
            .filter(CompoundBatch.batchID == payload.batch_id)
            .with_for_update()
            .first()
        )
        if batch is None:
            raise NotFoundError("Batch not found")

        if batch.expiry_date is not None and batch.expiry_date < date.today():
            if batch.status != BatchStatus.EXPIRED:
                batch.status = BatchStatus.EXPIRED
                self.db.commit()
            raise ServiceError(f"Batch {batch.batch_code} expired on {batch.expiry_date.isoformat()}.")

        volume = to_ml(payload.volume_ml)
        if volume <= 0:
            raise ServiceError("volume_ml must be a positive number.")

        total = to_ml(batch.total_volume_ml)
        already_dispensed = batch.dispensed_volume()
        if already_dispensed + volume > total:
            raise ServiceError(
                f"Dispensing {_format_ml(volume)}ml would exceed the batch total of {_format_ml(total)}ml."
            )

        dispensation = CompoundDispensation(
            batchID=batch.batchID,
            orderID=payload.order_id,
            userID=payload.user_id,
            volume_ml=volume,
        )
        self.db.add(dispensation)

        remaining = total - already_dispensed - volume
        if remaining == 0:
            batch.status = BatchStatus.DISPENSED
        self.db.commit()

        increment_counter("compound_dispensations_total")
        record_event(
            "dispensation_recorded",
            {
                "dispensation_id": dispensation.dispensationID,
                "batch_id": batch.batchID,
                "user_id": payload.user_id,
                "volume_ml": float(volume),
            },
        )
        self.logger.info(
            "Dispensed %sml from batch %s",
            _format_ml(volume),
            batch.batchID,
            extra={"practitioner_id": practitioner.userID, "remaining_volume_ml": float(remaining)},
        )

        return {
            "dispensation": dispensation.to_dict(),
            "batch": batch.to_dict(),
            "remaining_volume_ml": float(remaining),
        }
