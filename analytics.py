"""Admin dashboard numbers."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

PERIOD = timedelta(days=30)


def _as_utc(value) -> Optional[datetime]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _window(orders: Iterable[dict], start: datetime, end: datetime):
    count = 0
    revenue = 0.0
    for order in orders:
        created = _as_utc(order.get("created_at"))
        if created is None or not start <= created < end:
            continue
        count += 1
        revenue += float(order.get("total") or 0)
    return count, revenue


def _trend(current: float, previous: float) -> float:
    if previous <= 0:
        return 100.0
    return round((current - previous) / previous * 100, 2)


def dashboard_stats(store, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    # only the two trend windows are loaded
    orders = store.get_documents("order", {"created_at": {"$gte": now - 2 * PERIOD, "$lt": now}})
    current_orders, current_revenue = _window(orders, now - PERIOD, now)
    previous_orders, previous_revenue = _window(orders, now - 2 * PERIOD, now - PERIOD)
    return {
        "total_orders": store.count_documents("order"),
        "total_revenue": round(current_revenue, 2),
        "total_users": store.count_documents("user"),
        "total_menu_items": store.count_documents("menuitem"),
        "order_trend": _trend(current_orders, previous_orders),
        "revenue_trend": _trend(current_revenue, previous_revenue),
    }
