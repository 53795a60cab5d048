"""
Placemarks Backend: Version Route
===================================

GET /api/version: build metadata the frontend polls to detect a new
deployment and prompt a reload. Never cached (see CacheHeadersMiddleware).
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from placemarks.config import Settings
from placemarks.dependencies import get_settings
from placemarks.schemas.common import VersionResponse

router = APIRouter(prefix="/api", tags=["Version"])


@router.get("/version", response_model=VersionResponse, summary="Deployed build info")
async def get_version(settings: Settings = Depends(get_settings)) -> VersionResponse:
    now = datetime.now(timezone.utc).isoformat()
    return VersionResponse(
        version=settings.app_version,
        # Unset outside CI builds; report server time so the field is never empty.
        buildTime=settings.build_time or now,
        gitHash=settings.git_hash,
        environment=settings.environment,
        serverTime=now,
    )
