from __future__ import annotations

from flask import Blueprint, jsonify

from apothecary.blueprints.session_gate import int_arg, parse_body, require_practitioner
from apothecary.database import get_db
from apothecary.schemas import BatchCreate, DispensationCreate
from apothecary.services.batch_service import BatchService

batches_bp = Blueprint("batches", __name__, url_prefix="/api")


def _get_batch_service() -> BatchService:
    return BatchService(get_db())


@batches_bp.route("/compound-batches", methods=["GET"])
def list_batches():
    require_practitioner()
    batches = _get_batch_service().list_batches(compound_id=int_arg("compoundId"), limit=int_arg("limit"))
    return jsonify({"batches": [batch.to_dict() for batch in batches]})


@batches_bp.route("/compound-batches", methods=["POST"])
def create_batch():
    practitioner = require_practitioner()
    batch = _get_batch_service().create_batch(practitioner, parse_body(BatchCreate))
    return jsonify({"batch": batch.to_dict()}), 201


@batches_bp.route("/compound-dispensations", methods=["GET"])
def list_dispensations():
    require_practitioner()
    records = _get_batch_service().list_dispensations(batch_id=int_arg("batchId"), user_id=int_arg("userId"))
    return jsonify({"dispensations": [record.to_dict() for record in records]})


@batches_bp.route("/compound-dispensations", methods=["POST"])
def record_dispensation():
    practitioner = require_practitioner()
    result = _get_batch_service().record_dispensation(practitioner, parse_body(DispensationCreate))
    return jsonify(result), 201
