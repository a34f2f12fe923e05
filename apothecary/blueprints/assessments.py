from __future__ import annotations

import logging
from typing import Optional

from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from apothecary.assessment.questions import questionnaire
from apothecary.blueprints.session_gate import parse_body, require_practitioner, require_user
from apothecary.database import get_db
from apothecary.schemas import (
    GuidedAssessmentInput,
    OligoscanAssessmentInput,
    TrackActionInput,
    WellnessAssessmentInput,
    first_error_message,
    flatten_validation_error,
)
from apothecary.services.guided_assessment_service import GuidedAssessmentService
from apothecary.services.oligoscan_service import OligoscanService
from apothecary.services.wellness_assessment_service import WellnessAssessmentService

assessments_bp = Blueprint("assessments", __name__, url_prefix="/api")
logger = logging.getLogger(__name__)


def _get_wellness_service() -> WellnessAssessmentService:
    return WellnessAssessmentService(get_db())


def _forwarded_ip() -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For", "")
    first = forwarded.split(",")[0].strip()
    return first or None


@assessments_bp.route("/assessment/questions", methods=["GET"])
def get_questions():
    return jsonify(questionnaire())


@assessments_bp.route("/assessment/submit", methods=["POST"])
def submit_wellness_assessment():
    body = request.get_json(silent=True)
    body = dict(body) if isinstance(body, dict) else {}
    if body.get("ip_address") is None:
        body["ip_address"] = _forwarded_ip()
    try:
        data = WellnessAssessmentInput.model_validate(body)
    except ValidationError as exc:
        logger.info("Rejected wellness assessment submission", extra={"fields": sorted(flatten_validation_error(exc))})
        return jsonify({"error": first_error_message(exc), "errors": flatten_validation_error(exc)}), 400

    row = _get_wellness_service().submit(data)
    return jsonify({"id": row.public_id}), 201


@assessments_bp.route("/assessment/results/<assessment_id>", methods=["GET"])
def get_wellness_results(assessment_id: str):
    result = _get_wellness_service().get_results(assessment_id)
    return jsonify(result.to_dict())


@assessments_bp.route("/assessment/track-action", methods=["POST"])
def track_assessment_action():
    payload = parse_body(TrackActionInput)
    success, message, _ = _get_wellness_service().track_action(payload.id, payload.action)
    if not success:
        return jsonify({"error": message}), 404
    return jsonify({"success": True})


@assessments_bp.route("/assessments/guided-compound", methods=["POST"])
def create_guided_assessment():
    user = require_user()
    payload = parse_body(GuidedAssessmentInput)
    result = GuidedAssessmentService(get_db()).create(user.userID, payload)
    return jsonify(result), 201


@assessments_bp.route("/assessments/oligoscan", methods=["POST"])
def create_oligoscan_assessment():
    practitioner = require_practitioner()
    assessment = OligoscanService(get_db()).record(practitioner, parse_body(OligoscanAssessmentInput))
    return jsonify({"assessment": assessment.to_dict()}), 201
