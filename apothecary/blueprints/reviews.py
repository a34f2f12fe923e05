from __future__ import annotations

from flask import Blueprint, jsonify, request

from apothecary.blueprints.session_gate import int_arg, parse_body, require_user
from apothecary.database import get_db
from apothecary.schemas import ReviewCreate, ReviewUpdate, ReviewVoteInput
from apothecary.services.review_service import ReviewService

reviews_bp = Blueprint("reviews", __name__, url_prefix="/api")


def _get_review_service() -> ReviewService:
    return ReviewService(get_db())


@reviews_bp.route("/products/<int:product_id>/reviews", methods=["GET"])
def list_product_reviews(product_id: int):
    service = _get_review_service()
    reviews = service.list_reviews(
        product_id,
        sort_by=request.args.get("sortBy") or None,
        limit=int_arg("limit"),
        offset=int_arg("offset", 0) or 0,
    )
    return jsonify({"reviews": [review.to_dict() for review in reviews], "stats": service.review_stats(product_id)})


@reviews_bp.route("/products/<int:product_id>/reviews", methods=["POST"])
def create_product_review(product_id: int):
    user = require_user()
    review = _get_review_service().create_review(user, product_id, parse_body(ReviewCreate))
    return jsonify({"review": review.to_dict()}), 201


@reviews_bp.route("/reviews/<int:review_id>", methods=["PATCH"])
def update_review(review_id: int):
    user = require_user()
    review = _get_review_service().update_review(user, review_id, parse_body(ReviewUpdate))
    return jsonify({"review": review.to_dict()})


@reviews_bp.route("/reviews/<int:review_id>", methods=["DELETE"])
def delete_review(review_id: int):
    user = require_user()
    _get_review_service().delete_review(user, review_id)
    return jsonify({"success": True})


@reviews_bp.route("/reviews/<int:review_id>/vote", methods=["POST"])
def vote_on_review(review_id: int):
    user = require_user()
    payload = parse_body(ReviewVoteInput)
    vote, review = _get_review_service().vote(user, review_id, payload.is_helpful)
    return jsonify({"vote": vote.to_dict(), "helpful_count": review.helpful_count}), 201
