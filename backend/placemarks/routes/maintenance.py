"""
Placemarks Backend: Maintenance Report Routes
===============================================

What:  GET  /api/maintenance/report → markdown file download
       POST /api/maintenance/report → the same markdown wrapped in JSON
How:   Both call MaintenanceService.generate_maintenance_report() once and
       differ only in how the result is serialized.
Who:   The admin dashboard (POST, rendered inline) and operators fetching
       the report with curl (GET).
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from placemarks.dependencies import get_maintenance_service
from placemarks.exceptions import UpstreamServiceError, error_message
from placemarks.schemas.common import ErrorResponse
from placemarks.schemas.monitoring import MaintenanceReportResponse
from placemarks.services.maintenance_service import MaintenanceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/maintenance", tags=["Maintenance"])


def report_filename(now: datetime) -> str:
    return f"database-maintenance-report-{now.date().isoformat()}.md"


@router.get(
    "/report",
    response_class=Response,
    responses={
        200: {"content": {"text/markdown": {}}, "description": "Markdown attachment"},
        500: {"description": "Report generation failed", "model": ErrorResponse},
    },
    summary="Download the database maintenance report",
)
async def download_maintenance_report(
    maintenance: MaintenanceService = Depends(get_maintenance_service),
) -> Response:
    """
    Markdown report as an attachment named
    database-maintenance-report-YYYY-MM-DD.md (UTC date).
    """
    try:
        report = await maintenance.generate_maintenance_report()
    except Exception as e:
        logger.error("Maintenance report failed: %s", e, exc_info=True)
        raise UpstreamServiceError(
            "Failed to generate maintenance report",
            details=error_message(e),
            include_timestamp=True,
        ) from e

    filename = report_filename(datetime.now(timezone.utc))
    return Response(
        content=report,
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/report",
    response_model=MaintenanceReportResponse,
    responses={500: {"description": "Report generation failed", "model": ErrorResponse}},
    summary="Database maintenance report as JSON",
)
async def maintenance_report_json(
    maintenance: MaintenanceService = Depends(get_maintenance_service),
) -> MaintenanceReportResponse:
    try:
        report = await maintenance.generate_maintenance_report()
    except Exception as e:
        logger.error("Maintenance report failed: %s", e, exc_info=True)
        raise UpstreamServiceError(
            error_message(e),
            envelope=True,
            include_timestamp=True,
        ) from e

    return MaintenanceReportResponse(
        success=True,
        report=report,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
