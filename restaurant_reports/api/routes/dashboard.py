"""Manager dashboard headline statistics."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from restaurant_reports.api.routes.reports import get_report_caller, get_report_dao
from restaurant_reports.schemas import DashboardStats, ErrorResponse
from restaurant_reports.services.report_repository import SupabaseReportDAO
from restaurant_reports.services.report_service import ReportTimeoutError, generate_dashboard_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manager/dashboard", tags=["Dashboard"])


@router.get(
    "/stats",
    response_model=DashboardStats,
    responses={
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def get_dashboard_stats(
    caller: Dict[str, Any] = Depends(get_report_caller),
    dao: SupabaseReportDAO = Depends(get_report_dao),
) -> DashboardStats:
    """Revenue, orders, new customers and average order value, month over month."""

    try:
        return await generate_dashboard_stats(dao)
    except ReportTimeoutError as exc:
        logger.error("Dashboard stats timed out for user %s", caller.get("sub"))
        raise HTTPException(status_code=504, detail="Report generation timed out") from exc
    except Exception as exc:
        logger.exception("Error fetching manager stats")
        raise HTTPException(status_code=500, detail="Failed to fetch manager statistics") from exc
