"""Coercion helpers turning raw PostgREST rows into report records."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware datetime (UTC when naive)."""

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            value = value.replace("Z", "+00:00")
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def to_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_count(value: Any, default: Optional[int] = 0) -> Optional[int]:
    """Whole-number quantity; fractional values round half up."""

    number = to_float(value, default=None)
    if number is None or not math.isfinite(number):
        return default
    return int(math.floor(number + 0.5))


def coerce_id(value: Any) -> Optional[str]:
    """Return a string identifier from an id or an embedded record."""

    if isinstance(value, dict):
        value = value.get("id")
    if value is None or value == "":
        return None
    return str(value)


def normalize_order_line(row: Dict[str, Any]) -> Dict[str, Any]:
    ingredients = row.get("ingredients") or []
    return {
        "menu_item_id": coerce_id(row.get("menu_item_id") or row.get("menu_item")),
        "name": row.get("name"),
        "price": to_float(row.get("price")),
        "quantity": to_count(row.get("quantity"), default=None),
        "ingredients": [ref for ref in (coerce_id(entry) for entry in ingredients) if ref],
    }


def normalize_order(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not isinstance(row, dict):
        return None
    items = row.get("items") or []
    return {
        "id": coerce_id(row.get("id")),
        "status": row.get("status"),
        "created_at": parse_timestamp(row.get("created_at")),
        "table_id": coerce_id(row.get("table_id")),
        "assigned_to": coerce_id(row.get("assigned_to") or row.get("waiter_id")),
        "items": [normalize_order_line(item) for item in items if isinstance(item, dict)],
    }


def normalize_bill(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": coerce_id(row.get("id")),
        "total": to_float(row.get("total")),
        "payment_method": row.get("payment_method"),
        "payment_status": row.get("payment_status"),
        "created_at": parse_timestamp(row.get("created_at")),
        "customer_name": row.get("customer_name"),
        "customer_phone": row.get("customer_phone"),
        "order": normalize_order(row.get("order")),
    }


def normalize_inventory_item(row: Dict[str, Any]) -> Dict[str, Any]:
    quantity = to_float(row.get("quantity"))
    cost_per_unit = to_float(row.get("cost_per_unit"))
    total_cost = to_float(row.get("total_cost"), default=None)
    if total_cost is None:
        total_cost = quantity * cost_per_unit
    return {
        "id": coerce_id(row.get("id")),
        "name": row.get("name"),
        "category": row.get("category"),
        "quantity": quantity,
        "unit": row.get("unit"),
        "cost_per_unit": cost_per_unit,
        "total_cost": total_cost,
        "min_stock_level": to_float(row.get("min_stock_level")),
        "expiry_date": parse_timestamp(row.get("expiry_date")),
        "status": row.get("status"),
    }


def normalize_staff_member(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": coerce_id(row.get("id")),
        "name": row.get("name"),
        "role": row.get("role"),
    }


def normalize_customer(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": coerce_id(row.get("id")),
        "name": row.get("name"),
        "phone": row.get("phone"),
        "created_at": parse_timestamp(row.get("created_at")),
    }


def normalize_menu_item(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": coerce_id(row.get("id")),
        "name": row.get("name"),
        "category": row.get("category"),
        "price": to_float(row.get("price")),
        "popularity": to_float(row.get("popularity"), default=None),
    }


def order_lines(order: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not order:
        return []
    return order.get("items") or []


__all__ = [
    "coerce_id",
    "normalize_bill",
    "normalize_customer",
    "normalize_inventory_item",
    "normalize_menu_item",
    "normalize_order",
    "normalize_order_line",
    "normalize_staff_member",
    "order_lines",
    "parse_timestamp",
    "to_count",
    "to_float",
]
