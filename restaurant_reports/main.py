"""FastAPI application exposing the restaurant reporting endpoints."""

import logging
from typing import Dict

from fastapi import FastAPI

from restaurant_reports.api.routes.dashboard import router as dashboard_router
from restaurant_reports.api.routes.inventory import router as inventory_router
from restaurant_reports.api.routes.reports import router as reports_router
from restaurant_reports.config.settings import LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Restaurant Reports")
logger = logging.getLogger(__name__)

app.include_router(reports_router)
app.include_router(inventory_router)
app.include_router(dashboard_router)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("restaurant_reports.main:app", host="127.0.0.1", port=8000, reload=True)
