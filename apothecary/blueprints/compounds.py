from __future__ import annotations

from flask import Blueprint, jsonify, request

from apothecary.blueprints.session_gate import int_arg, parse_body, require_user
from apothecary.database import get_db
from apothecary.schemas import CompoundPayload
from apothecary.services.compound_service import CompoundService

compounds_bp = Blueprint("compounds", __name__, url_prefix="/api/compounds")


def _get_compound_service() -> CompoundService:
    return CompoundService(get_db())


@compounds_bp.route("", methods=["GET"])
def list_compounds():
    user = require_user()
    compounds = _get_compound_service().list_compounds(
        user.userID,
        tier=int_arg("tier"),
        compound_type=request.args.get("type") or None,
    )
    return jsonify({"compounds": [compound.to_dict() for compound in compounds]})


@compounds_bp.route("", methods=["POST"])
def create_or_preview_compound():
    user = require_user()
    payload = parse_body(CompoundPayload)
    preview = request.args.get("preview") == "1"
    result = _get_compound_service().evaluate(user, payload, preview=preview)
    return jsonify(result), 200 if preview else 201


@compounds_bp.route("/guided-gate", methods=["GET"])
def guided_gate():
    user = require_user()
    gate = _get_compound_service().guided_gate(user.userID, assessment_id=int_arg("assessment_id"))
    return jsonify(gate.to_dict())
