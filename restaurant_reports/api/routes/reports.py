"""Manager report endpoint built on top of the report service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from restaurant_reports.config.settings import SUPABASE_SERVICE_ROLE_KEY
from restaurant_reports.schemas import ErrorResponse, ReportEnvelope
from restaurant_reports.services.auth_utils import require_report_access
from restaurant_reports.services.postgrest_client import extract_bearer_token
from restaurant_reports.services.report_repository import ReportDataError, SupabaseReportDAO
from restaurant_reports.services.report_service import ReportTimeoutError, generate_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manager", tags=["Reports"])


async def get_access_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """Extract the Supabase bearer token from the Authorization header."""

    return extract_bearer_token(authorization)


async def get_report_caller(access_token: str = Depends(get_access_token)) -> Dict[str, Any]:
    """Reject callers whose role may not read reports."""

    return await require_report_access(access_token)


async def get_report_dao(
    access_token: str = Depends(get_access_token),
    caller: Dict[str, Any] = Depends(get_report_caller),
) -> SupabaseReportDAO:
    """Build the DAO only once the caller's token has been accepted by Supabase."""

    db_token, api_key = _resolve_postgrest_credentials(access_token)
    return SupabaseReportDAO(db_token, api_key=api_key)


def _resolve_postgrest_credentials(access_token: str) -> Tuple[str, Optional[str]]:
    if SUPABASE_SERVICE_ROLE_KEY:
        return SUPABASE_SERVICE_ROLE_KEY, SUPABASE_SERVICE_ROLE_KEY
    return access_token, None


@router.get(
    "/reports",
    response_model=ReportEnvelope,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def get_report(
    report_type: Optional[str] = Query(default="sales", alias="type"),
    period: Optional[str] = Query(default="month"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    caller: Dict[str, Any] = Depends(get_report_caller),
    dao: SupabaseReportDAO = Depends(get_report_dao),
) -> ReportEnvelope:
    """Return one of the sales, inventory, staff, menu or customers reports."""

    try:
        return await generate_report(dao, report_type, period, start_date, end_date)
    except HTTPException:
        raise
    except ReportTimeoutError as exc:
        logger.error("Report %s timed out for user %s", report_type, caller.get("sub"))
        raise HTTPException(status_code=504, detail="Report generation timed out") from exc
    except ReportDataError as exc:
        logger.error("Error generating report %s: %s", report_type, exc)
        raise HTTPException(status_code=500, detail="Failed to generate report") from exc
    except Exception as exc:
        logger.exception("Error generating report %s", report_type)
        raise HTTPException(status_code=500, detail="Failed to generate report") from exc
