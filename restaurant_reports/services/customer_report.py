"""Customer report: visits, spend and new-versus-repeat classification."""

from __future__ import annotations

from collections import Counter
from datetime import timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from restaurant_reports.schemas import CustomerReport, CustomerSummary
from restaurant_reports.services.grouping import fold_groups, rank
from restaurant_reports.services.records import order_lines, to_float
from restaurant_reports.services.time_window import resolve_timezone

GUEST = "Guest"
TOP_CUSTOMERS_LIMIT = 10
UNKNOWN_ITEM = "Unknown Item"


def customer_key(bill: Dict[str, Any]) -> str:
    """Name, then phone, then the shared ``Guest`` identity."""

    name = bill.get("customer_name")
    if name and name != GUEST:
        return name
    phone = bill.get("customer_phone")
    if phone:
        return phone
    return GUEST


def known_customers(bills: Iterable[Dict[str, Any]]) -> Set[str]:
    return {customer_key(bill) for bill in bills}


def build_customer_report(
    bills: Sequence[Dict[str, Any]],
    previous_bills: Sequence[Dict[str, Any]],
    *,
    tz: Union[str, tzinfo, None] = None,
) -> CustomerReport:
    """Summarize the window's bills per customer.

    A customer is new when their identity does not appear in
    ``previous_bills``, the period of equal length right before the window.
    """

    zone = resolve_timezone(tz)
    previous = known_customers(previous_bills)

    def _seed(key: str, bill: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "name": bill.get("customer_name") or GUEST,
            "visits": 0,
            "spent": 0.0,
            "last_visit": bill.get("created_at"),
            "is_new": key not in previous,
            "items": Counter(),
            "visit_hours": [],
        }

    def _accumulate(customer: Dict[str, Any], bill: Dict[str, Any]) -> Dict[str, Any]:
        customer["visits"] += 1
        customer["spent"] += to_float(bill.get("total"))
        created = bill.get("created_at")
        if created is not None:
            customer["visit_hours"].append(created.astimezone(zone).hour)
            if customer["last_visit"] is None or created > customer["last_visit"]:
                customer["last_visit"] = created
        for line in order_lines(bill.get("order")):
            customer["items"][line.get("name") or UNKNOWN_ITEM] += 1
        return customer

    customers = list(fold_groups(bills, customer_key, _seed, _accumulate).values())

    return CustomerReport(
        total_customers=len(customers),
        new_customers=sum(1 for customer in customers if customer["is_new"]),
        repeat_customers=sum(1 for customer in customers if customer["visits"] > 1),
        top_customers=[
            CustomerSummary(
                name=customer["name"],
                visits=customer["visits"],
                spent=customer["spent"],
                last_visit=_isoformat(customer["last_visit"]),
                favorite_item=favorite_item(customer["items"]),
                preferred_time=preferred_time(customer["visit_hours"]),
            )
            for customer in rank(customers, key=lambda customer: customer["spent"], limit=TOP_CUSTOMERS_LIMIT)
        ],
    )


def favorite_item(tally: Counter) -> str:
    # Counter.most_common keeps insertion order among equal counts.
    ranked = tally.most_common(1)
    return ranked[0][0] if ranked else "None"


def preferred_time(hours: List[int]) -> str:
    if not hours:
        return "No data"
    counts = Counter(hours)
    hour = min(counts, key=lambda value: (-counts[value], value))
    if hour < 12:
        return "Morning"
    if hour < 17:
        return "Afternoon"
    return "Evening"


def _isoformat(value: Optional[Any]) -> str:
    if value is None:
        return ""
    if hasattr(value, "astimezone"):
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    return str(value)


__all__ = [
    "build_customer_report",
    "customer_key",
    "favorite_item",
    "known_customers",
    "preferred_time",
]
