from __future__ import annotations

from flask import Blueprint, jsonify

from apothecary.blueprints.session_gate import parse_body, require_user
from apothecary.database import get_db
from apothecary.schemas import OrderCreate
from apothecary.services.order_service import OrderService

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _get_order_service() -> OrderService:
    return OrderService(get_db())


@orders_bp.route("", methods=["POST"])
def create_order():
    user = require_user()
    order = _get_order_service().create_order(user, parse_body(OrderCreate))
    return jsonify({"order": order.to_dict()}), 201


@orders_bp.route("", methods=["GET"])
def list_orders():
    user = require_user()
    orders = _get_order_service().list_orders(user.userID)
    return jsonify({"orders": [order.to_dict() for order in orders]})
