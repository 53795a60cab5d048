"""
Placemarks Backend: Index Monitoring Route
============================================

What:  GET /api/monitoring/indexes?action=<usage|unused|missing|size|health|report>
How:   `action` selects one IndexMonitor operation from a dispatch table.
       The result is wrapped as {"success": true, "data": ...}.

Action → operation:
    usage    analyze_index_usage()
    unused   get_unused_indexes()
    missing  get_missing_index_suggestions()
    size     get_index_size_summary()
    health   check_index_health()
    report   generate_index_monitoring_report()   (default)

An absent, empty or unrecognized action runs `report`.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder

from placemarks.dependencies import get_index_monitor
from placemarks.exceptions import UpstreamServiceError, error_message
from placemarks.schemas.common import ErrorResponse
from placemarks.services.index_monitor import IndexMonitor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/monitoring", tags=["Monitoring"])


class IndexAction(str, Enum):
    USAGE = "usage"
    UNUSED = "unused"
    MISSING = "missing"
    SIZE = "size"
    HEALTH = "health"
    REPORT = "report"

    @classmethod
    def parse(cls, raw: str | None) -> "IndexAction":
        """Unknown values fall back to REPORT."""
        try:
            return cls(raw)
        except ValueError:
            if raw:
                logger.debug("Unknown index monitoring action %r, using report", raw)
            return cls.REPORT


_DISPATCH: Dict[IndexAction, Callable[[IndexMonitor], Awaitable[Any]]] = {
    IndexAction.USAGE: lambda m: m.analyze_index_usage(),
    IndexAction.UNUSED: lambda m: m.get_unused_indexes(),
    IndexAction.MISSING: lambda m: m.get_missing_index_suggestions(),
    IndexAction.SIZE: lambda m: m.get_index_size_summary(),
    IndexAction.HEALTH: lambda m: m.check_index_health(),
    IndexAction.REPORT: lambda m: m.generate_index_monitoring_report(),
}


@router.get(
    "/indexes",
    responses={500: {"description": "Monitoring query failed", "model": ErrorResponse}},
    summary="Index usage monitoring",
)
async def monitor_indexes(
    action: str | None = Query(default=IndexAction.REPORT.value),
    monitor: IndexMonitor = Depends(get_index_monitor),
) -> Dict[str, Any]:
    selected = IndexAction.parse(action)
    try:
        data = await _DISPATCH[selected](monitor)
    except Exception as e:
        logger.error("Index monitoring (%s) failed: %s", selected.value, e, exc_info=True)
        raise UpstreamServiceError(error_message(e), envelope=True) from e

    return {"success": True, "data": jsonable_encoder(data)}
