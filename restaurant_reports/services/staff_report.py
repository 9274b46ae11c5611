"""Staff report: headcount per role and completion-driven performance."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from restaurant_reports.schemas import RoleCount, StaffPerformer, StaffReport
from restaurant_reports.services.grouping import fold_groups, rank, round_half_up
from restaurant_reports.services.records import coerce_id, to_float

COMPLETED_STATUSES = frozenset({"completed", "served"})
BASE_PERFORMANCE = 70
PERFORMANCE_RANGE = 25
TOP_PERFORMERS_LIMIT = 5


def build_staff_report(
    staff: Sequence[Dict[str, Any]],
    recent_orders: Sequence[Dict[str, Any]],
) -> StaffReport:
    activity = staff_activity(staff, recent_orders)

    roles = fold_groups(
        staff,
        lambda member: member.get("role") or "other",
        lambda _role, _member: 0,
        lambda count, _member: count + 1,
    )
    staff_by_role = rank(
        [RoleCount(role=role, count=count) for role, count in roles.items()],
        key=lambda entry: entry.count,
    )

    performers = [_performer(member, activity.get(coerce_id(member.get("id")))) for member in staff]
    return StaffReport(
        total_staff=len(staff),
        staff_by_role=staff_by_role,
        top_performers=rank(performers, key=lambda entry: entry.performance, limit=TOP_PERFORMERS_LIMIT),
    )


def staff_activity(
    staff: Sequence[Dict[str, Any]],
    orders: Sequence[Dict[str, Any]],
) -> Dict[str, Dict[str, float]]:
    """Per staff member counters, seeded for everyone including idle staff."""

    activity: Dict[str, Dict[str, float]] = {}
    for member in staff:
        member_id = coerce_id(member.get("id"))
        if member_id is None:
            continue
        activity[member_id] = {
            "orders_handled": 0,
            "orders_completed": 0,
            "tables_served": 0,
            "order_total": 0.0,
        }

    for order in orders:
        counters = activity.get(coerce_id(order.get("assigned_to")))
        if counters is None:
            continue
        counters["orders_handled"] += 1
        if order.get("status") in COMPLETED_STATUSES:
            counters["orders_completed"] += 1
        if order.get("table_id"):
            counters["tables_served"] += 1
        counters["order_total"] += sum(
            to_float(line.get("price")) * to_float(line.get("quantity"), default=1)
            for line in order.get("items") or []
        )
    return activity


def performance_score(orders_handled: int, orders_completed: int) -> int:
    if orders_handled <= 0:
        return BASE_PERFORMANCE
    completion_rate = orders_completed / orders_handled
    return round_half_up(BASE_PERFORMANCE + PERFORMANCE_RANGE * completion_rate)


def _performer(member: Dict[str, Any], counters: Optional[Dict[str, float]]) -> StaffPerformer:
    counters = counters or {"orders_handled": 0, "orders_completed": 0, "tables_served": 0}
    role = member.get("role")
    extra: Dict[str, int] = {}
    if role == "waiter":
        extra["tables_served"] = int(counters["tables_served"])
    elif role == "chef":
        extra["orders_handled"] = int(counters["orders_handled"])
    return StaffPerformer(
        id=coerce_id(member.get("id")),
        name=member.get("name"),
        role=role,
        performance=performance_score(counters["orders_handled"], counters["orders_completed"]),
        **extra,
    )


__all__ = ["build_staff_report", "performance_score", "staff_activity"]
