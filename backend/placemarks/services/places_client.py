"""
Placemarks Backend: Google Places Client
==========================================

What:  Server-side client for the Google Places web service (text search,
       place details, place photos).
How:   One shared httpx.AsyncClient (connection pooling, timeout) per app.
       The API key is added to every request here, so it never leaves the
       server.
Who:   Built by create_app(); used by the /api/places/* route handlers.

Failure model:
    Transport errors and non-2xx statuses raise PlacesAPIError. Nothing is
    retried; the route handler turns the error into a 500 response. Google's
    own `status` field ("ZERO_RESULTS", "REQUEST_DENIED", ...) is part of the
    JSON body and is forwarded untouched.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from placemarks.config import Settings
from placemarks.exceptions import PlacesAPIError

logger = logging.getLogger(__name__)


class PlacesClient:
    """
    Thin async wrapper around the three Places endpoints the app proxies.

    Args:
        settings:     Supplies the API key, base URL, timeout and detail fields.
        http_client:  Optional pre-built httpx.AsyncClient (tests pass one
                      backed by httpx.MockTransport).
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.api_key = settings.google_maps_api_key
        self.base_url = settings.places_api_base_url.rstrip("/")
        self.details_fields = settings.places_details_fields
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.places_timeout_seconds),
            follow_redirects=True,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search_places(self, query: str, city: Optional[str] = None) -> Dict[str, Any]:
        """
        Text search. When `city` is given it is folded into the query
        ("coffee in Lisbon") to give Google location context.
        """
        search_query = f"{query} in {city}" if city else query
        response = await self._get("textsearch/json", {"query": search_query})
        return response.json()

    async def get_place_details(self, place_id: str) -> Dict[str, Any]:
        """Place details limited to the fields the UI renders."""
        response = await self._get(
            "details/json",
            {"place_id": place_id, "fields": self.details_fields},
        )
        return response.json()

    async def get_place_photo(self, photo_reference: str, max_width: int = 400) -> bytes:
        """
        Photo bytes. Google answers with a 302 to the image CDN; the client
        follows it and returns the final body.
        """
        response = await self._get(
            "photo",
            {"photoreference": photo_reference, "maxwidth": max_width},
        )
        return response.content

    async def _get(self, path: str, params: Dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}/{path}"
        start_time = time.perf_counter()
        try:
            response = await self._client.get(url, params={**params, "key": self.api_key})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("Places %s returned HTTP %d", path, status)
            raise PlacesAPIError(
                message=f"Google Places returned HTTP {status}",
                status_code=status,
                context={"path": path},
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Places %s request failed: %s", path, type(e).__name__)
            raise PlacesAPIError(
                message="Google Places request failed",
                context={"path": path, "error_type": type(e).__name__},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("Places %s completed in %.0fms", path, duration_ms)
        return response

    async def aclose(self) -> None:
        """Release pooled connections. Called from the app lifespan."""
        await self._client.aclose()
