"""Month-over-month headline figures for the manager dashboard."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from restaurant_reports.schemas import (
    AverageOrderValueStat,
    CustomerStat,
    DashboardStats,
    OrderStat,
    RevenueStat,
)
from restaurant_reports.services.grouping import round_half_up
from restaurant_reports.services.records import to_float
from restaurant_reports.services.time_window import resolve_timezone, shift_months


def month_starts(now: datetime, tz: Union[str, tzinfo, None] = None) -> Tuple[datetime, datetime]:
    """Return the local midnights opening the previous and the current month."""

    local = now.astimezone(resolve_timezone(tz))
    this_month = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return shift_months(this_month, -1), this_month


def growth_rate(current: float, previous: float) -> float:
    """Percentage change against ``previous``; 0 when there is nothing to compare with."""

    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def build_dashboard_stats(
    paid_bills: Sequence[Dict[str, Any]],
    orders: Sequence[Dict[str, Any]],
    customers: Sequence[Dict[str, Any]],
    *,
    this_month: datetime,
) -> DashboardStats:
    """Compare the current month with the previous one.

    Every record is expected to start at the previous month; anything created
    at or after ``this_month`` counts for the current month.
    """

    current_bills, previous_bills = _split(paid_bills, this_month)
    current_orders, previous_orders = _split(orders, this_month)
    new_customers, previous_customers = _split(customers, this_month)

    current_revenue = sum(to_float(bill.get("total")) for bill in current_bills)
    previous_revenue = sum(to_float(bill.get("total")) for bill in previous_bills)

    return DashboardStats(
        revenue=RevenueStat(current=current_revenue, growth=growth_rate(current_revenue, previous_revenue)),
        orders=OrderStat(
            total=len(current_orders),
            growth=growth_rate(len(current_orders), len(previous_orders)),
        ),
        customers=CustomerStat(
            new=len(new_customers),
            growth=growth_rate(len(new_customers), len(previous_customers)),
        ),
        average_order_value=AverageOrderValueStat(
            current=_rounded_ratio(current_revenue, len(current_bills)),
            previous=_rounded_ratio(previous_revenue, len(previous_orders)),
        ),
    )


def _split(records: Sequence[Dict[str, Any]], boundary: datetime):
    current, previous = [], []
    for record in records:
        created_at: Optional[datetime] = record.get("created_at")
        if created_at is None:
            continue
        (current if created_at >= boundary else previous).append(record)
    return current, previous


def _rounded_ratio(total: float, count: int) -> int:
    return round_half_up(total / count) if count else 0


__all__ = ["build_dashboard_stats", "growth_rate", "month_starts"]
