"""Manager inventory listing endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from restaurant_reports.api.routes.reports import get_report_caller, get_report_dao
from restaurant_reports.schemas import ErrorResponse, InventoryListing, InventoryListingRequest
from restaurant_reports.services.report_repository import ReportDataError, SupabaseReportDAO
from restaurant_reports.services.report_service import ReportTimeoutError, generate_inventory_listing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manager/inventory", tags=["Inventory"])


@router.post(
    "/report",
    response_model=InventoryListing,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def create_inventory_report(
    payload: Optional[InventoryListingRequest] = Body(default=None),
    caller: Dict[str, Any] = Depends(get_report_caller),
    dao: SupabaseReportDAO = Depends(get_report_dao),
) -> InventoryListing:
    """List inventory items for ``low-stock``, ``expiring-soon``, ``category`` or ``value``."""

    request = payload or InventoryListingRequest()
    try:
        return await generate_inventory_listing(dao, request.report_type, request.category)
    except HTTPException:
        raise
    except ReportTimeoutError as exc:
        logger.error("Inventory report timed out for user %s", caller.get("sub"))
        raise HTTPException(status_code=504, detail="Report generation timed out") from exc
    except ReportDataError as exc:
        logger.error("Error generating inventory report: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to generate inventory report") from exc
    except Exception as exc:
        logger.exception("Error generating inventory report")
        raise HTTPException(status_code=500, detail="Failed to generate inventory report") from exc
