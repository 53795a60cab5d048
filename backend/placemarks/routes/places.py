"""
Placemarks Backend: Google Places Proxy Routes
================================================

What:  GET /api/places/search, /api/places/details and /api/places/photo.
How:   Validate the query string, make one PlacesClient call, forward the
       result. Search and details return Google's JSON untouched; photo
       returns the image bytes with a 24h public cache.
Who:   The search page, list pages and place cards in the frontend.

Error mapping:
    missing required parameter  → 400 {"error": "<param> ... is required"}
    any PlacesClient failure    → 500 {"error": "Failed to ..."}
The upstream failure is logged with the request ID; its text never reaches
the client.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from placemarks.dependencies import get_places_client
from placemarks.exceptions import UpstreamServiceError, ValidationError
from placemarks.schemas.common import ErrorResponse
from placemarks.services.places_client import PlacesClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/places", tags=["Places"])

DEFAULT_PHOTO_WIDTH = "400"
MAX_PHOTO_WIDTH = 1600  # Largest width the Places photo endpoint serves

PHOTO_CACHE_CONTROL = "public, max-age=86400"

_ERROR_RESPONSES = {
    400: {"description": "Missing or invalid parameter", "model": ErrorResponse},
    500: {"description": "Google Places request failed", "model": ErrorResponse},
}


@router.get(
    "/search",
    responses=_ERROR_RESPONSES,
    summary="Text search for places",
)
async def search_places(
    query: str | None = Query(default=None, description="Free-text search, e.g. 'ramen'"),
    city: str | None = Query(default=None, description="Optional city to bias results"),
    places: PlacesClient = Depends(get_places_client),
):
    """Forward a text search; `city` is appended as "<query> in <city>"."""
    if not query:
        raise ValidationError("Query parameter is required", field="query")

    try:
        return await places.search_places(query, city)
    except Exception as e:
        logger.error("Places search failed: %s", e, exc_info=True)
        raise UpstreamServiceError("Failed to search places") from e


@router.get(
    "/details",
    responses=_ERROR_RESPONSES,
    summary="Place details by place ID",
)
async def get_place_details(
    place_id: str | None = Query(default=None, alias="placeId"),
    places: PlacesClient = Depends(get_places_client),
):
    if not place_id:
        raise ValidationError("placeId parameter is required", field="placeId")

    try:
        return await places.get_place_details(place_id)
    except Exception as e:
        logger.error("Places details failed for %s: %s", place_id, e, exc_info=True)
        raise UpstreamServiceError("Failed to get place details") from e


@router.get(
    "/photo",
    response_class=Response,
    responses={
        200: {"content": {"image/jpeg": {}}, "description": "Photo bytes"},
        **_ERROR_RESPONSES,
    },
    summary="Place photo by photo reference",
)
async def get_place_photo(
    photo_reference: str | None = Query(default=None, alias="photoReference"),
    max_width: str = Query(default=DEFAULT_PHOTO_WIDTH, alias="maxWidth"),
    places: PlacesClient = Depends(get_places_client),
) -> Response:
    """
    Proxy a place photo so the API key stays server-side.

    Content type is always image/jpeg; Google serves JPEG for place photos.
    """
    if not photo_reference:
        raise ValidationError("photoReference parameter is required", field="photoReference")

    width = _parse_max_width(max_width)

    try:
        image = await places.get_place_photo(photo_reference, width)
    except Exception as e:
        logger.error("Places photo failed: %s", e, exc_info=True)
        raise UpstreamServiceError("Failed to get place photo") from e

    return Response(
        content=image,
        media_type="image/jpeg",
        headers={"Cache-Control": PHOTO_CACHE_CONTROL},
    )


def _parse_max_width(raw: str) -> int:
    try:
        width = int(raw)
    except ValueError:
        width = 0
    if not 1 <= width <= MAX_PHOTO_WIDTH:
        raise ValidationError(
            f"maxWidth must be an integer between 1 and {MAX_PHOTO_WIDTH}",
            field="maxWidth",
        )
    return width
