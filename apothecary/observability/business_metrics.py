from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from apothecary.config import Config
from apothecary.models import Order, OrderItem, WellnessAssessment


@dataclass(frozen=True)
class MonthWindow:
    key: str
    label: str
    year: int
    month: int


def generate_month_windows(months: Optional[int] = None, now: Optional[datetime] = None) -> List[MonthWindow]:
    """Return the trailing ``months`` calendar months, oldest first, ending with the current one."""
    months = months or Config.ANALYTICS_MONTHS
    now = now or datetime.now(timezone.utc)
    windows: List[MonthWindow] = []
    for offset in range(months - 1, -1, -1):
        index = now.year * 12 + (now.month - 1) - offset
        year, month = divmod(index, 12)
        start = datetime(year, month + 1, 1)
        windows.append(
            MonthWindow(
                key=f"{year}-{month + 1:02d}",
                label=start.strftime("%b"),
                year=year,
                month=month + 1,
            )
        )
    return windows


def compute_revenue_series(
    session: Session,
    months: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    windows = generate_month_windows(months, now)
    totals = {window.key: 0.0 for window in windows}

    rows = session.query(Order.created_at, Order.total_amount).all()
    for created_at, amount in rows:
        if created_at is None:
            continue
        stamp = _to_utc(created_at)
        key = f"{stamp.year}-{stamp.month:02d}"
        if key in totals:
            totals[key] += float(amount or 0)

    series = [
        {"key": window.key, "label": window.label, "value": round(totals[window.key], 2)}
        for window in windows
    ]
    current = series[-1]["value"] if series else 0.0
    previous = series[-2]["value"] if len(series) > 1 else 0.0

    return {
        "series": series,
        "current_month_revenue": current,
        "previous_month_revenue": previous,
        "growth_percent": compute_growth(current, previous),
    }


def compute_growth(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)


def compute_order_summary(session: Session) -> Dict[str, Any]:
    statuses = [row[0] for row in session.query(Order.status).all()]
    breakdown = Counter(_enum_value(status) or "unknown" for status in statuses)
    total_items = session.query(func.coalesce(func.sum(OrderItem.quantity), 0)).scalar() or 0
    order_count = len(statuses)

    return {
        "order_count": order_count,
        "status_breakdown": dict(breakdown),
        "open_orders": breakdown.get("pending", 0),
        "average_items_per_order": round(total_items / order_count, 1) if order_count else 0.0,
    }


def compute_assessment_funnel(session: Session) -> Dict[str, Any]:
    """Lead funnel for the wellness self-assessment."""
    rows = session.query(
        WellnessAssessment.qualification_level,
        WellnessAssessment.result_viewed,
        WellnessAssessment.clicked_cta,
        WellnessAssessment.booking_made,
    ).all()

    submissions = len(rows)
    by_level = Counter(level or "unscored" for level, *_ in rows)
    viewed = sum(1 for row in rows if row[1])
    clicked = sum(1 for row in rows if row[2])
    booked = sum(1 for row in rows if row[3])

    def _rate(count: int) -> float:
        return round(count / submissions * 100, 1) if submissions else 0.0

    return {
        "submissions": submissions,
        "by_qualification_level": {level: by_level.get(level, 0) for level in ("high", "medium", "low")},
        "result_viewed": viewed,
        "clicked_cta": clicked,
        "booking_made": booked,
        "view_rate": _rate(viewed),
        "cta_rate": _rate(clicked),
        "booking_rate": _rate(booked),
    }


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


__all__ = [
    "MonthWindow",
    "generate_month_windows",
    "compute_revenue_series",
    "compute_growth",
    "compute_order_summary",
    "compute_assessment_funnel",
]
