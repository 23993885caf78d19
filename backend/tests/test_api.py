"""
PlaceMarker Tests: HTTP API
===========================

Drives the FastAPI app through httpx.AsyncClient + ASGITransport with the
per-test store, location provider and in-memory notes injected (see the
`api_client` fixture).

What we test:
    ✅ Mark / unmark / toggle / clear and the status codes they answer with
    ✅ Location refresh from a reported device fix; visible set in responses
    ✅ Radius validation → 400 with the standard error body
    ✅ Notes read/write, blank note → 400
    ✅ Discovery endpoints and the saved flag
    ✅ Health and request-id header
"""

import httpx
import pytest

from conftest import KITCHENER, mock_http_client, place_north_of
from placemarker.dependencies import get_discovery_client
from placemarker.main import app
from placemarker.services.discovery import PlacesDiscoveryClient


def place_body(place):
    return place.model_dump()


async def report_kitchener_fix(api_client):
    response = await api_client.post(
        "/api/device/fix",
        json={"latitude": KITCHENER[0], "longitude": KITCHENER[1], "accuracy_m": 8},
    )
    assert response.status_code == 200


class TestPlacesApi:
    @pytest.mark.asyncio
    async def test_add_then_duplicate(self, api_client, kitchener_places):
        p1, _ = kitchener_places

        first = await api_client.post("/api/places", json=place_body(p1))
        second = await api_client.post("/api/places", json=place_body(p1))

        assert first.status_code == 201
        assert first.json() == {
            "place_id": "p1",
            "saved": True,
            "changed": True,
            "persisted": True,
            "storage_error": None,
        }
        assert second.status_code == 200
        assert second.json()["changed"] is False
        listing = (await api_client.get("/api/places")).json()
        assert listing["count"] == 1

    @pytest.mark.asyncio
    async def test_invalid_place_rejected(self, api_client):
        response = await api_client.post(
            "/api/places", json={"id": "", "name": "x", "latitude": 91, "longitude": 0}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_remove_then_remove_again(self, api_client, kitchener_places):
        p1, _ = kitchener_places
        await api_client.post("/api/places", json=place_body(p1))

        removed = await api_client.delete("/api/places/p1")
        missing = await api_client.delete("/api/places/p1")

        assert removed.status_code == 200
        assert removed.json()["saved"] is False
        assert missing.status_code == 200
        assert missing.json()["changed"] is False
        assert missing.json()["persisted"] is None

    @pytest.mark.asyncio
    async def test_toggle_and_clear(self, api_client, kitchener_places):
        p1, p2 = kitchener_places

        toggled = await api_client.post("/api/places/toggle", json=place_body(p1))
        assert toggled.json()["saved"] is True
        await api_client.post("/api/places", json=place_body(p2))

        cleared = await api_client.delete("/api/places")

        assert cleared.status_code == 200
        assert cleared.json()["changed"] is True
        assert (await api_client.get("/api/places")).json()["places"] == []


class TestLocationApi:
    @pytest.mark.asyncio
    async def test_refresh_and_radius(self, api_client, kitchener_places):
        for place in kitchener_places:
            await api_client.post("/api/places", json=place_body(place))
        await report_kitchener_fix(api_client)

        refreshed = await api_client.post("/api/location/refresh")

        body = refreshed.json()
        assert body["located"] is True
        assert body["user_location"]["latitude"] == KITCHENER[0]
        assert body["user_location"]["latitudeDelta"] == pytest.approx(0.0922)
        assert [p["id"] for p in body["visible"]] == ["p1"]

        widened = await api_client.put("/api/search-radius", json={"radius_m": 6000})

        assert widened.status_code == 200
        assert [p["id"] for p in widened.json()["visible"]] == ["p1", "p2"]
        visible = (await api_client.get("/api/places/visible")).json()
        assert visible["count"] == 2

    @pytest.mark.asyncio
    async def test_denied_permission(self, api_client):
        status = await api_client.post("/api/device/permission", json={"granted": False})
        assert status.json() == {"permission": False, "has_fix": False}

        refreshed = await api_client.post("/api/location/refresh")

        assert refreshed.status_code == 200
        assert refreshed.json()["located"] is False
        assert refreshed.json()["user_location"] is None

    @pytest.mark.asyncio
    async def test_bad_radius(self, api_client):
        response = await api_client.put("/api/search-radius", json={"radius_m": -1})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"] == {"field": "search_radius"}
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_region_is_independent_of_location(self, api_client):
        region = {"latitude": 43.45, "longitude": -80.49, "latitudeDelta": 0.05, "longitudeDelta": 0.05}

        response = await api_client.put("/api/region", json=region)
        state = (await api_client.get("/api/state")).json()

        assert response.json() == region
        assert state["current_region"] == region
        assert state["user_location"] is None
        assert state["search_radius"] == 5000


class TestNotesApi:
    @pytest.mark.asyncio
    async def test_read_write(self, api_client):
        empty = await api_client.get("/api/notes/p1")
        assert empty.json() == {"place_id": "p1", "text": "", "synced": True, "error": None}

        await api_client.put("/api/notes/p1", json={"text": "first"})
        saved = await api_client.put("/api/notes/p1", json={"text": "second"})

        assert saved.status_code == 200
        assert (await api_client.get("/api/notes/p1")).json()["text"] == "second"

    @pytest.mark.asyncio
    async def test_blank_note(self, api_client):
        response = await api_client.put("/api/notes/p1", json={"text": "  "})

        assert response.status_code == 400
        assert response.json()["message"] == "Please enter a note before saving"


class TestDiscoveryApi:
    @pytest.fixture
    def discovery(self):
        lat, lon = KITCHENER
        results = [
            {"place_id": pid, "name": pid, "geometry": {"location": {"lat": lat + dlat, "lng": lon}}}
            for pid, dlat in (("far", 0.03), ("p1", 0.001), ("mid", 0.01))
        ]

        def handler(request):
            if request.url.path.endswith("/details/json"):
                if request.url.params["place_id"] == "p1":
                    return httpx.Response(200, json={"status": "OK", "result": results[1]})
                return httpx.Response(200, json={"status": "NOT_FOUND"})
            return httpx.Response(200, json={"status": "OK", "results": results})

        client = PlacesDiscoveryClient(api_key="k", http_client=mock_http_client(handler))
        app.dependency_overrides[get_discovery_client] = lambda: client
        return client

    @pytest.mark.asyncio
    async def test_nearby_requires_location(self, api_client, discovery):
        response = await api_client.get("/api/discovery/nearby")

        assert response.status_code == 503
        assert response.json()["error"] == "location_unavailable"

    @pytest.mark.asyncio
    async def test_nearby_sorted_and_flagged(self, api_client, discovery):
        p1 = place_north_of(KITCHENER[0], KITCHENER[1], 100, "p1")
        await api_client.post("/api/places", json=place_body(p1))
        await report_kitchener_fix(api_client)
        await api_client.post("/api/location/refresh")

        response = await api_client.get("/api/discovery/nearby")

        candidates = response.json()["candidates"]
        assert [c["id"] for c in candidates] == ["p1", "mid", "far"]
        assert [c["saved"] for c in candidates] == [True, False, False]

    @pytest.mark.asyncio
    async def test_search_and_details(self, api_client, discovery):
        search = await api_client.get("/api/discovery/search", params={"q": "tacos"})
        found = await api_client.get("/api/discovery/places/p1")
        missing = await api_client.get("/api/discovery/places/nope")

        assert search.json()["count"] == 3
        assert found.json()["id"] == "p1"
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_search_requires_query(self, api_client):
        response = await api_client.get("/api/discovery/search", params={"q": ""})
        assert response.status_code == 422


class TestHealthApi:
    @pytest.mark.asyncio
    async def test_health(self, api_client):
        response = await api_client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["notes"] == "local"
        assert body["discovery"] == "disabled"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, api_client):
        response = await api_client.get("/api/state", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"
