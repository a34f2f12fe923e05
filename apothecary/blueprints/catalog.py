from __future__ import annotations

from flask import Blueprint, jsonify, request

from apothecary.blueprints.session_gate import int_arg
from apothecary.database import get_db
from apothecary.services.catalog_service import CatalogService

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/products")


def _get_catalog_service() -> CatalogService:
    return CatalogService(get_db())


@catalog_bp.route("", methods=["GET"])
def list_products():
    limit = int_arg("limit")
    offset = int_arg("offset", 0) or 0
    products, total = _get_catalog_service().list_products(
        category=request.args.get("category") or None,
        search=request.args.get("search") or None,
        limit=limit if limit and limit > 0 else None,
        offset=offset,
    )
    return jsonify({"products": [product.to_dict() for product in products], "total": total})


@catalog_bp.route("/categories", methods=["GET"])
def list_categories():
    return jsonify({"categories": _get_catalog_service().list_categories()})


@catalog_bp.route("/<slug>", methods=["GET"])
def get_product(slug: str):
    product = _get_catalog_service().get_product_by_slug(slug)
    return jsonify({"product": product.to_dict()})
