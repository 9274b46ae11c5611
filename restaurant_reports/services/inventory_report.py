"""Inventory report built from the current stock snapshot."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from restaurant_reports.config.settings import REPORT_EXPIRY_HORIZON_DAYS
from restaurant_reports.schemas import (
    CategoryTotals,
    InventoryListing,
    InventoryListingSummary,
    InventoryRecord,
    InventoryReport,
    LowStockItem,
    StockCategory,
)
from restaurant_reports.services.grouping import fold_groups, rank
from restaurant_reports.services.records import to_float

LOW_STOCK_STATUSES = frozenset({"Low Stock", "Critical Stock", "Out of Stock"})
LOW_STOCK_LIST_LIMIT = 10
UNCATEGORIZED = "Uncategorized"
INVENTORY_LISTINGS = ("all", "low-stock", "expiring-soon", "category", "value")


def build_inventory_report(
    items: Sequence[Dict[str, Any]],
    recent_orders: Sequence[Dict[str, Any]],
    *,
    now: datetime,
    expiry_horizon_days: int = REPORT_EXPIRY_HORIZON_DAYS,
) -> InventoryReport:
    """Summarize stock as of ``now``.

    ``recent_orders`` only feed the ingredient usage estimate behind each
    category's movement label; they come from the usage lookback window, not
    from the window the caller asked for.
    """

    usage = ingredient_usage(recent_orders)
    low_stock = [item for item in items if is_low_stock(item)]
    expires_before = now + timedelta(days=expiry_horizon_days)
    expiring = [item for item in items if _expires_by(item, expires_before)]

    return InventoryReport(
        total_items=len(items),
        total_value=sum(to_float(item.get("total_cost")) for item in items),
        low_stock_items=len(low_stock),
        expiring_items=len(expiring),
        stock_categories=_stock_categories(items, usage),
        low_stock_item_list=[
            LowStockItem(
                id=item.get("id"),
                name=item.get("name"),
                category=item.get("category") or UNCATEGORIZED,
                quantity=to_float(item.get("quantity")),
                min_stock_level=to_float(item.get("min_stock_level")),
            )
            for item in low_stock[:LOW_STOCK_LIST_LIMIT]
        ],
    )


def is_low_stock(item: Dict[str, Any]) -> bool:
    """Status label and threshold are both honored; either one qualifies."""

    if item.get("status") in LOW_STOCK_STATUSES:
        return True
    quantity = to_float(item.get("quantity"), default=None)
    threshold = to_float(item.get("min_stock_level"), default=None)
    if quantity is None or threshold is None:
        return False
    return quantity <= threshold


def ingredient_usage(orders: Sequence[Dict[str, Any]]) -> Counter:
    usage: Counter = Counter()
    for order in orders:
        for line in order.get("items") or []:
            ingredients = line.get("ingredients") or []
            if not ingredients:
                continue
            quantity = to_float(line.get("quantity"), default=None) or 1
            for ingredient_id in ingredients:
                usage[str(ingredient_id)] += quantity
    return usage


def movement_label(total_items: int, total_usage: float) -> str:
    if total_usage > 0:
        per_item = total_usage / total_items
        if per_item > 20:
            return "High"
        if per_item < 5:
            return "Low"
        return "Medium"
    if total_items > 20:
        return "High"
    if total_items < 5:
        return "Low"
    return "Medium"


def _stock_categories(items: Sequence[Dict[str, Any]], usage: Counter) -> List[StockCategory]:
    def _seed(_category: str, _item: Dict[str, Any]) -> Dict[str, float]:
        return {"total_items": 0, "total_value": 0.0, "total_usage": 0.0}

    def _accumulate(bucket: Dict[str, float], item: Dict[str, Any]) -> Dict[str, float]:
        bucket["total_items"] += 1
        bucket["total_value"] += to_float(item.get("total_cost"))
        bucket["total_usage"] += usage.get(str(item.get("id")), 0)
        return bucket

    categories = fold_groups(items, lambda item: item.get("category") or UNCATEGORIZED, _seed, _accumulate)
    summaries = [
        StockCategory(
            category=category,
            total_items=bucket["total_items"],
            total_value=bucket["total_value"],
            avg_movement=movement_label(bucket["total_items"], bucket["total_usage"]),
        )
        for category, bucket in categories.items()
    ]
    return rank(summaries, key=lambda summary: summary.total_value)


class InvalidInventoryListing(ValueError):
    """Unknown inventory listing type."""


def build_inventory_listing(
    items: Sequence[Dict[str, Any]],
    listing: Optional[str] = "all",
    *,
    category: Optional[str] = None,
    now: datetime,
    expiry_horizon_days: int = REPORT_EXPIRY_HORIZON_DAYS,
) -> InventoryListing:
    """Filter and order the stock snapshot for one of ``INVENTORY_LISTINGS``.

    ``low-stock`` uses the same rule as the inventory report, ``expiring-soon``
    lists items expiring within the horizon (already expired included) by
    expiry date, ``category`` keeps one category unless it is empty or
    ``"all"``, and ``value`` orders by total cost. Other listings are ordered
    by category then name.
    """

    kind = (listing or "all").strip().lower()
    if kind == "low-stock":
        selected = [item for item in items if is_low_stock(item)]
    elif kind == "expiring-soon":
        expires_before = now + timedelta(days=expiry_horizon_days)
        selected = sorted(
            (item for item in items if _expires_by(item, expires_before)),
            key=lambda item: item["expiry_date"],
        )
    elif kind == "category":
        selected = [
            item for item in items
            if not category or category == "all" or item.get("category") == category
        ]
    elif kind in ("all", "value"):
        selected = list(items)
    else:
        raise InvalidInventoryListing(f"Unknown inventory listing {listing!r}")

    if kind == "value":
        selected = rank(selected, key=lambda item: to_float(item.get("total_cost")))
    elif kind != "expiring-soon":
        selected = sorted(selected, key=lambda item: (item.get("category") or "", item.get("name") or ""))

    return InventoryListing(
        items=[_inventory_record(item) for item in selected],
        summary=InventoryListingSummary(
            total_items=len(selected),
            total_value=sum(to_float(item.get("total_cost")) for item in selected),
            low_stock_items=sum(1 for item in selected if is_low_stock(item)),
            category_summary=_category_totals(selected),
        ),
        generated_at=now,
    )


def _inventory_record(item: Dict[str, Any]) -> InventoryRecord:
    return InventoryRecord(
        id=item.get("id"),
        name=item.get("name"),
        category=item.get("category"),
        quantity=to_float(item.get("quantity")),
        unit=item.get("unit"),
        cost_per_unit=to_float(item.get("cost_per_unit")),
        total_cost=to_float(item.get("total_cost")),
        min_stock_level=to_float(item.get("min_stock_level")),
        expiry_date=item.get("expiry_date"),
        status=item.get("status"),
    )


def _expires_by(item: Dict[str, Any], deadline: datetime) -> bool:
    expiry = item.get("expiry_date")
    return expiry is not None and expiry <= deadline


def _category_totals(items: Sequence[Dict[str, Any]]) -> Dict[str, CategoryTotals]:
    def _accumulate(totals: CategoryTotals, item: Dict[str, Any]) -> CategoryTotals:
        totals.count += 1
        totals.value += to_float(item.get("total_cost"))
        return totals

    return fold_groups(
        items,
        lambda item: item.get("category") or UNCATEGORIZED,
        lambda _category, _item: CategoryTotals(count=0, value=0.0),
        _accumulate,
    )


__all__ = [
    "INVENTORY_LISTINGS",
    "InvalidInventoryListing",
    "build_inventory_listing",
    "build_inventory_report",
    "ingredient_usage",
    "is_low_stock",
    "movement_label",
]
