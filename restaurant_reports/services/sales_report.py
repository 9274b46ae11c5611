"""Sales report: revenue totals, daily trend, payment and item breakdowns."""

from __future__ import annotations

from datetime import timezone
from typing import Any, Dict, List, Optional, Sequence

from restaurant_reports.config.settings import REPORT_TABLE_COUNT
from restaurant_reports.schemas import (
    DailyRevenue,
    OrderStatusBreakdown,
    PaymentMethodBreakdown,
    SalesReport,
    TopSellingItem,
)
from restaurant_reports.services.grouping import fold_groups, percentage_of, rank
from restaurant_reports.services.records import order_lines, to_count, to_float
from restaurant_reports.services.time_window import TimeWindow

TOP_SELLING_LIMIT = 10
UNKNOWN_ITEM = "Unknown Item"


def build_sales_report(
    bills: Sequence[Dict[str, Any]],
    window: TimeWindow,
    *,
    table_count: int = REPORT_TABLE_COUNT,
) -> SalesReport:
    """Aggregate the paid bills of ``window`` into the sales report."""

    total_revenue = sum(_bill_total(bill) for bill in bills)
    total_orders = len(bills)
    average_order_value = total_revenue / total_orders if total_orders else 0

    return SalesReport(
        total_revenue=total_revenue,
        total_orders=total_orders,
        average_order_value=average_order_value,
        table_turnover_rate=_table_turnover_rate(total_orders, window, table_count),
        revenue_by_day=_revenue_by_day(bills),
        payment_methods=_payment_methods(bills, total_revenue),
        order_types=_order_types(bills, total_revenue),
        top_selling_items=_top_selling_items(bills),
    )


def _bill_total(bill: Dict[str, Any]) -> float:
    return to_float(bill.get("total"))


def _amount_bucket(_key: Any, _bill: Dict[str, Any]) -> Dict[str, float]:
    return {"amount": 0.0, "count": 0}


def _add_bill(bucket: Dict[str, float], bill: Dict[str, Any]) -> Dict[str, float]:
    bucket["amount"] += _bill_total(bill)
    bucket["count"] += 1
    return bucket


def _revenue_by_day(bills: Sequence[Dict[str, Any]]) -> List[DailyRevenue]:
    def _day(bill: Dict[str, Any]) -> Optional[str]:
        created = bill.get("created_at")
        if created is None:
            return None
        return created.astimezone(timezone.utc).date().isoformat()

    days = fold_groups(bills, _day, _amount_bucket, _add_bill)
    return [
        DailyRevenue(date=day, revenue=bucket["amount"], order_count=bucket["count"])
        for day, bucket in sorted(days.items())
    ]


def _payment_methods(bills: Sequence[Dict[str, Any]], total_revenue: float) -> List[PaymentMethodBreakdown]:
    methods = fold_groups(bills, lambda bill: bill.get("payment_method") or "unknown", _amount_bucket, _add_bill)
    return [
        PaymentMethodBreakdown(
            method=method,
            amount=bucket["amount"],
            count=bucket["count"],
            percentage=percentage_of(bucket["amount"], total_revenue),
        )
        for method, bucket in methods.items()
    ]


def _order_types(bills: Sequence[Dict[str, Any]], total_revenue: float) -> List[OrderStatusBreakdown]:
    def _status(bill: Dict[str, Any]) -> Optional[str]:
        order = bill.get("order")
        if not order:
            return None
        return order.get("status") or "unknown"

    statuses = fold_groups(bills, _status, _amount_bucket, _add_bill)
    return [
        OrderStatusBreakdown(
            status=status,
            amount=bucket["amount"],
            count=bucket["count"],
            percentage=percentage_of(bucket["amount"], total_revenue),
        )
        for status, bucket in statuses.items()
    ]


def _top_selling_items(bills: Sequence[Dict[str, Any]]) -> List[TopSellingItem]:
    lines = [line for bill in bills for line in order_lines(bill.get("order"))]

    def _seed(item_id: str, line: Dict[str, Any]) -> Dict[str, Any]:
        return {"id": item_id, "name": line.get("name") or UNKNOWN_ITEM, "quantity": 0, "revenue": 0.0}

    def _accumulate(entry: Dict[str, Any], line: Dict[str, Any]) -> Dict[str, Any]:
        quantity = to_count(line.get("quantity"))
        entry["quantity"] += quantity
        entry["revenue"] += to_float(line.get("price")) * quantity
        return entry

    items = fold_groups(lines, lambda line: line.get("menu_item_id") or "unknown", _seed, _accumulate)
    ranked = rank(items.values(), key=lambda entry: entry["revenue"], limit=TOP_SELLING_LIMIT)
    return [TopSellingItem(**entry) for entry in ranked]


def _table_turnover_rate(total_orders: int, window: TimeWindow, table_count: int) -> float:
    days = window.days_spanned
    if days <= 0 or table_count <= 0:
        return 0
    return (total_orders / table_count) / days


__all__ = ["build_sales_report"]
