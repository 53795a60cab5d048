"""
Placemarks Backend: Health Check Routes
=========================================

What:  GET /health               process health for container probes
       GET /api/health/database  table-maintenance health for the admin UI
How:   /health runs a `SELECT 1` and checks that the Places key is set.
       /api/health/database summarizes MaintenanceService.check_database_health().

Status levels (/health):
    healthy    database reachable, Places configured
    degraded   database reachable, Places key missing
    unhealthy  database unreachable
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from placemarks import __version__
from placemarks.dependencies import get_engine, get_maintenance_service, get_places_client
from placemarks.exceptions import error_message
from placemarks.schemas.common import HealthResponse
from placemarks.schemas.monitoring import (
    DatabaseHealthDetails,
    DatabaseHealthResponse,
    DatabaseHealthTable,
)
from placemarks.services.maintenance_service import MaintenanceService
from placemarks.services.places_client import PlacesClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    engine: AsyncEngine = Depends(get_engine),
    places: PlacesClient = Depends(get_places_client),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    places_status = "configured" if places.is_configured else "unconfigured"
    if places_status == "unconfigured" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        places=places_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )


@router.get(
    "/api/health/database",
    response_model=DatabaseHealthResponse,
    responses={500: {"model": DatabaseHealthResponse}},
    summary="Table maintenance health",
)
async def database_health(
    maintenance: MaintenanceService = Depends(get_maintenance_service),
):
    """
    Table bloat summary in the shape the admin dashboard reads.

    `status` is "healthy" when no table needs urgent maintenance and
    "degraded" otherwise; "error" (with HTTP 500) when the check itself
    blew up.
    """
    try:
        health = await maintenance.check_database_health()
    except Exception as e:
        logger.error("Database health check failed: %s", e, exc_info=True)
        body = DatabaseHealthResponse(
            status="error",
            timestamp=datetime.now(timezone.utc).isoformat(),
            details=DatabaseHealthDetails(),
            error=error_message(e),
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    return DatabaseHealthResponse(
        status="healthy" if health.healthy else "degraded",
        timestamp=health.timestamp.isoformat(),
        details=DatabaseHealthDetails(
            urgentTables=len(health.urgent_tables),
            warningTables=len(health.warning_tables),
            totalTables=health.summary.total_tables,
            criticalTables=health.summary.critical_tables,
            highPriorityTables=health.summary.high_priority_tables,
            mediumPriorityTables=health.summary.medium_priority_tables,
            recommendations=[
                f"VACUUM {t.table_name} immediately ({t.dead_row_percentage:g}% dead rows)"
                for t in health.urgent_tables
            ],
        ),
        tables=[
            DatabaseHealthTable(
                name=t.table_name,
                liveRows=t.live_rows,
                deadRows=t.dead_rows,
                deadRowPercentage=t.dead_row_percentage,
                size=t.total_size,
                status=t.maintenance_status,
            )
            for t in health.all_tables
        ],
    )
