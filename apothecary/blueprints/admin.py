from __future__ import annotations

from flask import Blueprint, jsonify

from apothecary.blueprints.session_gate import require_admin
from apothecary.database import get_db
from apothecary.observability import get_metrics_snapshot
from apothecary.observability.business_metrics import (
    compute_assessment_funnel,
    compute_order_summary,
    compute_revenue_series,
)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/metrics", methods=["GET"])
def admin_metrics():
    require_admin()
    return jsonify(get_metrics_snapshot())


@admin_bp.route("/analytics", methods=["GET"])
def admin_analytics():
    require_admin()
    db = get_db()
    return jsonify(
        {
            "revenue": compute_revenue_series(db),
            "orders": compute_order_summary(db),
            "assessment_funnel": compute_assessment_funnel(db),
        }
    )
