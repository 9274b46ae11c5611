"""Dispatch report requests to the matching aggregator."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from fastapi import HTTPException

from restaurant_reports.config import settings
from restaurant_reports.schemas import DashboardStats, InventoryListing, ReportEnvelope, ReportPayload, TimeRange
from restaurant_reports.services.customer_report import build_customer_report
from restaurant_reports.services.dashboard_stats import build_dashboard_stats, month_starts
from restaurant_reports.services.inventory_report import (
    INVENTORY_LISTINGS,
    build_inventory_listing,
    build_inventory_report,
)
from restaurant_reports.services.menu_report import build_menu_report
from restaurant_reports.services.report_repository import SupabaseReportDAO
from restaurant_reports.services.sales_report import build_sales_report
from restaurant_reports.services.staff_report import build_staff_report
from restaurant_reports.services.time_window import (
    DEFAULT_PERIOD,
    InvalidTimeWindow,
    TimeWindow,
    resolve_time_window,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_REPORT_TYPE = "sales"


class ReportTimeoutError(RuntimeError):
    """The caller's deadline expired before the repository reads finished."""


class ReportDeadline:
    """Time budget checked before, and enforced around, each repository read."""

    def __init__(self, timeout: Optional[float]):
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._expires_at = loop.time() + timeout if timeout and timeout > 0 else None

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return self._expires_at - self._loop.time()

    async def run(self, call: Callable[[], Awaitable[T]]) -> T:
        remaining = self.remaining()
        if remaining is None:
            return await call()
        if remaining <= 0:
            raise ReportTimeoutError("Report deadline expired")
        try:
            return await asyncio.wait_for(call(), timeout=remaining)
        except asyncio.TimeoutError as exc:
            raise ReportTimeoutError("Report deadline expired") from exc


def usage_window(now: datetime, lookback_days: Optional[int] = None) -> TimeWindow:
    """Trailing usage window, independent from the requested report window."""

    days = settings.REPORT_USAGE_LOOKBACK_DAYS if lookback_days is None else lookback_days
    return TimeWindow(now - timedelta(days=days), now)


async def _sales(dao: SupabaseReportDAO, window: TimeWindow, now: datetime, deadline: ReportDeadline) -> ReportPayload:
    bills = await deadline.run(lambda: dao.fetch_bills(window.start, window.end, payment_status="paid"))
    return build_sales_report(bills, window, table_count=settings.REPORT_TABLE_COUNT)


async def _inventory(dao: SupabaseReportDAO, window: TimeWindow, now: datetime, deadline: ReportDeadline) -> ReportPayload:
    lookback = usage_window(now)
    items, orders = await deadline.run(
        lambda: asyncio.gather(dao.fetch_inventory_items(), dao.fetch_orders(lookback.start))
    )
    return build_inventory_report(
        items,
        orders,
        now=now,
        expiry_horizon_days=settings.REPORT_EXPIRY_HORIZON_DAYS,
    )


async def _staff(dao: SupabaseReportDAO, window: TimeWindow, now: datetime, deadline: ReportDeadline) -> ReportPayload:
    lookback = usage_window(now)
    staff, orders = await deadline.run(
        lambda: asyncio.gather(dao.fetch_staff_members(), dao.fetch_orders(lookback.start))
    )
    return build_staff_report(staff, orders)


async def _menu(dao: SupabaseReportDAO, window: TimeWindow, now: datetime, deadline: ReportDeadline) -> ReportPayload:
    menu_items, orders = await deadline.run(
        lambda: asyncio.gather(dao.fetch_menu_items(), dao.fetch_orders(window.start, window.end))
    )
    return build_menu_report(menu_items, orders, default_rating=settings.REPORT_DEFAULT_MENU_RATING)


async def _customers(dao: SupabaseReportDAO, window: TimeWindow, now: datetime, deadline: ReportDeadline) -> ReportPayload:
    previous = window.previous()
    bills, previous_bills = await deadline.run(
        lambda: asyncio.gather(
            dao.fetch_bills(window.start, window.end),
            dao.fetch_bills(previous.start, previous.end),
        )
    )
    return build_customer_report(bills, previous_bills, tz=settings.REPORT_TIMEZONE)


ReportBuilder = Callable[[SupabaseReportDAO, TimeWindow, datetime, ReportDeadline], Awaitable[ReportPayload]]

REPORT_BUILDERS: Dict[str, ReportBuilder] = {
    "sales": _sales,
    "inventory": _inventory,
    "staff": _staff,
    "menu": _menu,
    "customers": _customers,
}
REPORT_TYPES = tuple(REPORT_BUILDERS)


async def generate_report(
    dao: SupabaseReportDAO,
    report_type: Optional[str] = DEFAULT_REPORT_TYPE,
    period: Optional[str] = DEFAULT_PERIOD,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    timeout: Optional[float] = None,
) -> ReportEnvelope:
    """Resolve the window, run one aggregator and wrap its payload.

    Input errors surface as 400 before any repository read. Repository
    failures propagate unchanged to the caller.
    """

    kind = (report_type or DEFAULT_REPORT_TYPE).strip().lower()
    builder = REPORT_BUILDERS.get(kind)
    if builder is None:
        raise HTTPException(status_code=400, detail="Invalid report type")

    current = now or datetime.now(timezone.utc)
    period_keyword = (period or DEFAULT_PERIOD).strip().lower()
    try:
        window = resolve_time_window(
            period_keyword,
            start_date,
            end_date,
            now=current,
            tz=settings.REPORT_TIMEZONE,
        )
    except InvalidTimeWindow as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    deadline = ReportDeadline(_effective_timeout(timeout))
    logger.info(
        "Generating %s report for %s (%s -> %s)",
        kind,
        period_keyword,
        window.start.isoformat(),
        window.end.isoformat(),
    )
    data = await builder(dao, window, current, deadline)

    return ReportEnvelope(
        report_type=kind,
        period=period_keyword,
        time_range=TimeRange(start_date=window.start, end_date=window.end),
        data=data,
        generated_at=datetime.now(timezone.utc),
    )


async def generate_inventory_listing(
    dao: SupabaseReportDAO,
    listing: Optional[str] = None,
    category: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    timeout: Optional[float] = None,
) -> InventoryListing:
    """Filtered inventory listing; an unknown listing type is a 400 before any read."""

    kind = (listing or "all").strip().lower()
    if kind not in INVENTORY_LISTINGS:
        raise HTTPException(status_code=400, detail="Invalid inventory report type")

    current = now or datetime.now(timezone.utc)
    deadline = ReportDeadline(_effective_timeout(timeout))
    logger.info("Generating %s inventory listing (category=%s)", kind, category)
    items = await deadline.run(dao.fetch_inventory_items)
    return build_inventory_listing(
        items,
        kind,
        category=category,
        now=current,
        expiry_horizon_days=settings.REPORT_EXPIRY_HORIZON_DAYS,
    )


async def generate_dashboard_stats(
    dao: SupabaseReportDAO,
    *,
    now: Optional[datetime] = None,
    timeout: Optional[float] = None,
) -> DashboardStats:
    """Current month against the previous one, months starting in the report timezone."""

    current = now or datetime.now(timezone.utc)
    last_month, this_month = month_starts(current, settings.REPORT_TIMEZONE)
    deadline = ReportDeadline(_effective_timeout(timeout))
    bills, orders, customers = await deadline.run(
        lambda: asyncio.gather(
            dao.fetch_bills(last_month, current, payment_status="paid"),
            dao.fetch_orders(last_month),
            dao.fetch_customers(last_month),
        )
    )
    return build_dashboard_stats(bills, orders, customers, this_month=this_month)


def _effective_timeout(timeout: Optional[float]) -> Optional[float]:
    return settings.REPORT_TIMEOUT_SECONDS if timeout is None else timeout


__all__ = [
    "DEFAULT_REPORT_TYPE",
    "REPORT_TYPES",
    "ReportDeadline",
    "ReportTimeoutError",
    "generate_dashboard_stats",
    "generate_inventory_listing",
    "generate_report",
    "usage_window",
]
