"""
Placemarks Backend: Places Route Tests
========================================

What we test:
    ✅ Missing required parameters → 400 with the exact message
    ✅ Search and details forward upstream JSON unchanged
    ✅ Photo returns bytes as image/jpeg with a 24h public cache
    ✅ maxWidth default and validation
    ✅ Upstream failures → 500 with a generic message, no leaked details
"""

import pytest

from placemarks.exceptions import PlacesAPIError


class TestPlacesSearch:

    @pytest.mark.asyncio
    async def test_missing_query_returns_400(self, test_client, mock_places):
        response = await test_client.get("/api/places/search")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Query parameter is required"
        assert body["details"] == {"field": "query"}
        mock_places.search_places.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_query_returns_400(self, test_client):
        response = await test_client.get("/api/places/search", params={"query": ""})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_forwards_upstream_json(self, test_client, mock_places):
        upstream = {
            "results": [{"place_id": "abc", "name": "Tartine"}],
            "status": "OK",
        }
        mock_places.search_places.return_value = upstream

        response = await test_client.get(
            "/api/places/search", params={"query": "bakery", "city": "San Francisco"}
        )

        assert response.status_code == 200
        assert response.json() == upstream
        mock_places.search_places.assert_awaited_once_with("bakery", "San Francisco")

    @pytest.mark.asyncio
    async def test_city_is_optional(self, test_client, mock_places):
        mock_places.search_places.return_value = {"results": [], "status": "ZERO_RESULTS"}

        response = await test_client.get("/api/places/search", params={"query": "ramen"})

        assert response.status_code == 200
        assert response.json()["status"] == "ZERO_RESULTS"
        mock_places.search_places.assert_awaited_once_with("ramen", None)

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_generic_500(self, test_client, mock_places):
        mock_places.search_places.side_effect = PlacesAPIError(
            "Google Places returned HTTP 403", status_code=403
        )

        response = await test_client.get("/api/places/search", params={"query": "ramen"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to search places"
        assert "403" not in response.text

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_also_generic(self, test_client, mock_places):
        mock_places.search_places.side_effect = RuntimeError("secret internals")

        response = await test_client.get("/api/places/search", params={"query": "x"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to search places"
        assert "secret internals" not in response.text

    @pytest.mark.asyncio
    async def test_repeated_get_is_idempotent(self, test_client, mock_places):
        mock_places.search_places.return_value = {"results": [], "status": "OK"}

        first = await test_client.get("/api/places/search", params={"query": "tea"})
        second = await test_client.get("/api/places/search", params={"query": "tea"})

        assert first.json() == second.json()
        assert mock_places.search_places.await_count == 2


class TestPlaceDetails:

    @pytest.mark.asyncio
    async def test_missing_place_id_returns_400(self, test_client):
        response = await test_client.get("/api/places/details")

        assert response.status_code == 400
        assert response.json()["error"] == "placeId parameter is required"

    @pytest.mark.asyncio
    async def test_snake_case_param_is_not_accepted(self, test_client):
        response = await test_client.get("/api/places/details", params={"place_id": "abc"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_forwards_upstream_json(self, test_client, mock_places):
        upstream = {"result": {"place_id": "abc", "rating": 4.6}, "status": "OK"}
        mock_places.get_place_details.return_value = upstream

        response = await test_client.get("/api/places/details", params={"placeId": "abc"})

        assert response.status_code == 200
        assert response.json() == upstream
        mock_places.get_place_details.assert_awaited_once_with("abc")

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_500(self, test_client, mock_places):
        mock_places.get_place_details.side_effect = PlacesAPIError("timeout")

        response = await test_client.get("/api/places/details", params={"placeId": "abc"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to get place details"


class TestPlacePhoto:

    JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"

    @pytest.mark.asyncio
    async def test_missing_reference_returns_400(self, test_client):
        response = await test_client.get("/api/places/photo")

        assert response.status_code == 400
        assert response.json()["error"] == "photoReference parameter is required"

    @pytest.mark.asyncio
    async def test_returns_jpeg_with_long_cache(self, test_client, mock_places):
        mock_places.get_place_photo.return_value = self.JPEG

        response = await test_client.get(
            "/api/places/photo", params={"photoReference": "ref-1"}
        )

        assert response.status_code == 200
        assert response.content == self.JPEG
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["cache-control"] == "public, max-age=86400"

    @pytest.mark.asyncio
    async def test_max_width_defaults_to_400(self, test_client, mock_places):
        mock_places.get_place_photo.return_value = self.JPEG

        await test_client.get("/api/places/photo", params={"photoReference": "ref-1"})

        mock_places.get_place_photo.assert_awaited_once_with("ref-1", 400)

    @pytest.mark.asyncio
    async def test_max_width_is_passed_through(self, test_client, mock_places):
        mock_places.get_place_photo.return_value = self.JPEG

        await test_client.get(
            "/api/places/photo", params={"photoReference": "ref-1", "maxWidth": "800"}
        )

        mock_places.get_place_photo.assert_awaited_once_with("ref-1", 800)

    @pytest.mark.asyncio
    async def test_content_type_is_jpeg_for_any_bytes(self, test_client, mock_places):
        mock_places.get_place_photo.return_value = b"\x89PNG\r\n\x1a\n"

        response = await test_client.get(
            "/api/places/photo", params={"photoReference": "ref-1"}
        )

        assert response.headers["content-type"] == "image/jpeg"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("width", ["abc", "0", "-5", "1601", "12.5"])
    async def test_invalid_max_width_returns_400(self, test_client, mock_places, width):
        response = await test_client.get(
            "/api/places/photo", params={"photoReference": "ref-1", "maxWidth": width}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "maxWidth must be an integer between 1 and 1600"
        mock_places.get_place_photo.assert_not_called()

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_500_json(self, test_client, mock_places):
        mock_places.get_place_photo.side_effect = PlacesAPIError("boom", status_code=502)

        response = await test_client.get(
            "/api/places/photo", params={"photoReference": "ref-1"}
        )

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["error"] == "Failed to get place photo"
