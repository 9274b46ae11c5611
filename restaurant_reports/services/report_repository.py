"""Read-only PostgREST access to the records the reports aggregate."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError

from restaurant_reports.services.postgrest_client import create_postgrest_client, postgrest_status
from restaurant_reports.services.records import (
    normalize_bill,
    normalize_customer,
    normalize_inventory_item,
    normalize_menu_item,
    normalize_order,
    normalize_staff_member,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000
ORDER_COLUMNS = "id,status,table_id,assigned_to,created_at,items"
BILL_COLUMNS = (
    "id,total,payment_method,payment_status,customer_name,customer_phone,created_at,"
    f"order:orders({ORDER_COLUMNS})"
)
INVENTORY_COLUMNS = (
    "id,name,category,quantity,unit,cost_per_unit,total_cost,min_stock_level,expiry_date,status"
)
STAFF_COLUMNS = "id,name,role"
MENU_COLUMNS = "id,name,category,price,popularity"
CUSTOMER_COLUMNS = "id,name,phone,created_at"


class ReportDataError(RuntimeError):
    """A repository read failed; the report is abandoned as a whole."""


class SupabaseReportDAO:
    """DAO relying on Supabase/PostgREST for report source records."""

    def __init__(self, access_token: str, *, api_key: Optional[str] = None):
        self.access_token = access_token
        self.api_key = api_key

    def _client(self):
        return create_postgrest_client(self.access_token, api_key=self.api_key)

    async def fetch_bills(
        self,
        start: datetime,
        end: datetime,
        *,
        payment_status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Bills created within ``[start, end]`` with their order embedded."""

        def _query(client):
            query = (
                client.table("bills")
                .select(BILL_COLUMNS)
                .gte("created_at", self._format_timestamp(start))
                .lte("created_at", self._format_timestamp(end))
            )
            if payment_status:
                query = query.eq("payment_status", payment_status)
            return query.order("created_at")

        rows = await self._fetch_all(_query, context="fetch bills")
        return [normalize_bill(row) for row in rows]

    async def fetch_orders(self, start: datetime, end: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Orders created from ``start`` (and up to ``end`` when given)."""

        def _query(client):
            query = (
                client.table("orders")
                .select(ORDER_COLUMNS)
                .gte("created_at", self._format_timestamp(start))
            )
            if end is not None:
                query = query.lte("created_at", self._format_timestamp(end))
            return query.order("created_at")

        rows = await self._fetch_all(_query, context="fetch orders")
        return [order for order in (normalize_order(row) for row in rows) if order]

    async def fetch_inventory_items(self) -> List[Dict[str, Any]]:
        """Current stock snapshot, unfiltered."""

        rows = await self._fetch_all(
            lambda client: client.table("inventory_items").select(INVENTORY_COLUMNS).order("name"),
            context="fetch inventory",
        )
        return [normalize_inventory_item(row) for row in rows]

    async def fetch_staff_members(self) -> List[Dict[str, Any]]:
        """Every staff member except administrators."""

        rows = await self._fetch_all(
            lambda client: client.table("staff")
            .select(STAFF_COLUMNS)
            .or_("role.is.null,role.neq.admin")
            .order("name"),
            context="fetch staff",
        )
        return [normalize_staff_member(row) for row in rows]

    async def fetch_menu_items(self) -> List[Dict[str, Any]]:
        rows = await self._fetch_all(
            lambda client: client.table("menu_items").select(MENU_COLUMNS).order("name"),
            context="fetch menu items",
        )
        return [normalize_menu_item(row) for row in rows]

    async def fetch_customers(self, start: datetime, end: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Customer records created from ``start`` (and up to ``end`` when given)."""

        def _query(client):
            query = (
                client.table("customers")
                .select(CUSTOMER_COLUMNS)
                .gte("created_at", self._format_timestamp(start))
            )
            if end is not None:
                query = query.lte("created_at", self._format_timestamp(end))
            return query.order("created_at")

        rows = await self._fetch_all(_query, context="fetch customers")
        return [normalize_customer(row) for row in rows]

    async def _fetch_all(self, build_query: Callable[[Any], Any], *, context: str) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            rows: List[Dict[str, Any]] = []
            with self._client() as client:
                offset = 0
                while True:
                    response = build_query(client).range(offset, offset + PAGE_SIZE - 1).execute()
                    page = response.data or []
                    rows.extend(page)
                    if len(page) < PAGE_SIZE:
                        return rows
                    offset += PAGE_SIZE

        try:
            return await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:
            logger.error("%s failed (%s): %s", context, postgrest_status(exc), exc.message)
            raise ReportDataError(f"{context} failed") from exc
        except HttpxError as exc:
            logger.error("Supabase unreachable during %s: %s", context, exc)
            raise ReportDataError(f"{context} failed") from exc

    @staticmethod
    def _format_timestamp(value: datetime) -> str:
        normalized = value.astimezone(timezone.utc)
        return normalized.isoformat(timespec="milliseconds").replace("+00:00", "Z")


__all__ = ["ReportDataError", "SupabaseReportDAO"]
