"""Menu report: category mix and per-item order volume within a window."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from restaurant_reports.config.settings import REPORT_DEFAULT_MENU_RATING
from restaurant_reports.schemas import CategoryShare, LeastOrderedItem, MenuItemStats, MenuReport
from restaurant_reports.services.grouping import fold_groups, percentage_of, rank
from restaurant_reports.services.records import coerce_id, to_count, to_float

TOP_ITEMS_LIMIT = 10
LEAST_ORDERED_LIMIT = 5
UNCATEGORIZED = "Uncategorized"


def build_menu_report(
    menu_items: Sequence[Dict[str, Any]],
    orders: Sequence[Dict[str, Any]],
    *,
    default_rating: Optional[float] = REPORT_DEFAULT_MENU_RATING,
) -> MenuReport:
    """Aggregate ``orders`` placed in the window against the current menu.

    Items lacking a popularity score get ``default_rating`` so the report is
    reproducible for identical inputs.
    """

    total_items = len(menu_items)
    categories = fold_groups(
        menu_items,
        lambda item: item.get("category") or UNCATEGORIZED,
        lambda _category, _item: 0,
        lambda count, _item: count + 1,
    )
    category_breakdown = rank(
        [
            CategoryShare(category=category, count=count, percentage=percentage_of(count, total_items))
            for category, count in categories.items()
        ],
        key=lambda entry: entry.count,
    )

    stats = _seed_item_stats(menu_items, default_rating)
    for order in orders:
        for line in order.get("items") or []:
            item_id = coerce_id(line.get("menu_item_id"))
            entry = stats.get(item_id) if item_id else None
            if entry is None:
                continue
            quantity = to_count(line.get("quantity"))
            entry["ordered_count"] += quantity
            entry["revenue"] += to_float(line.get("price")) * quantity

    all_items = list(stats.values())
    top_items = rank(all_items, key=lambda entry: entry["ordered_count"], limit=TOP_ITEMS_LIMIT)
    least_ordered = rank(
        [entry for entry in all_items if entry["ordered_count"] > 0],
        key=lambda entry: entry["ordered_count"],
        limit=LEAST_ORDERED_LIMIT,
        descending=False,
    )

    return MenuReport(
        total_items=total_items,
        category_breakdown=category_breakdown,
        top_items=[MenuItemStats(**entry) for entry in top_items],
        least_ordered_items=[
            LeastOrderedItem(
                id=entry["id"],
                name=entry["name"],
                category=entry["category"],
                price=entry["price"],
                ordered_count=entry["ordered_count"],
            )
            for entry in least_ordered
        ],
    )


def _seed_item_stats(
    menu_items: Sequence[Dict[str, Any]],
    default_rating: Optional[float],
) -> Dict[Optional[str], Dict[str, Any]]:
    stats: Dict[Optional[str], Dict[str, Any]] = {}
    for item in menu_items:
        item_id = coerce_id(item.get("id"))
        popularity = to_float(item.get("popularity"), default=None)
        stats[item_id] = {
            "id": item_id,
            "name": item.get("name"),
            "category": item.get("category") or UNCATEGORIZED,
            "price": to_float(item.get("price")),
            "ordered_count": 0,
            "revenue": 0.0,
            "rating": popularity if popularity is not None else default_rating,
        }
    return stats


__all__ = ["build_menu_report"]
