from __future__ import annotations

from flask import Blueprint, jsonify

from apothecary.blueprints.session_gate import parse_body
from apothecary.database import get_db
from apothecary.schemas import NewsletterSubscribeInput
from apothecary.services.newsletter_service import NewsletterService

newsletter_bp = Blueprint("newsletter", __name__, url_prefix="/api")


@newsletter_bp.route("/newsletter", methods=["POST"])
def subscribe():
    _, started = NewsletterService(get_db()).subscribe(parse_body(NewsletterSubscribeInput))
    if not started:
        return jsonify({"message": "You are already subscribed!"}), 200
    return jsonify({"message": "Thanks for subscribing! Check your inbox for wellness tips soon."}), 201
