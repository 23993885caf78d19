"""
PlaceMarker Tests: Shared Fixtures
==================================

What:  Fixtures shared by the whole suite.
How:   Environment overrides are applied before any placemarker import so
       the settings singleton, the module engine and the notes backend all
       pick up test values. Each test gets its own SQLite file under
       tmp_path; remote services are faked with httpx.MockTransport.

Fixture Hierarchy:
    engine ── gateway ── store
    location_provider ──┘
    notes_sync (in-memory store, fixed identity)
    api_client (ASGI app with the above injected)
"""

import os
import tempfile

# Must run before any placemarker import.
os.environ["DATABASE_URL"] = (
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="placemarker_test_"), "app.db")
)
os.environ["FIREBASE_DATABASE_URL"] = ""
os.environ["FIREBASE_API_KEY"] = ""
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import math

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from placemarker.database import create_engine_for
from placemarker.domain import Fix, Place
from placemarker.services.geofence import EARTH_RADIUS_M
from placemarker.services.location import ReportedLocationProvider
from placemarker.services.note_store import InMemoryNoteStore
from placemarker.services.notes_sync import NotesSyncService
from placemarker.services.persistence_gateway import PersistenceGateway
from placemarker.store.spatial_store import SpatialStore

# Kitchener, ON
KITCHENER = (43.4549, -80.4998)


def place_north_of(lat: float, lon: float, meters: float, place_id: str, name: str = "") -> Place:
    """A place `meters` due north of (lat, lon); distance along a meridian is exact."""
    return Place(
        id=place_id,
        name=name or place_id,
        latitude=lat + math.degrees(meters / EARTH_RADIUS_M),
        longitude=lon,
    )


def kitchener_fix() -> Fix:
    return Fix(latitude=KITCHENER[0], longitude=KITCHENER[1], accuracy_m=5.0)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh SQLite database file per test."""
    test_engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'places.db'}")
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def gateway(engine):
    """PersistenceGateway with its schema already created."""
    gw = PersistenceGateway(engine)
    assert (await gw.ensure_schema()).ok
    return gw


@pytest.fixture
def location_provider():
    return ReportedLocationProvider()


@pytest_asyncio.fixture
async def store(gateway, location_provider):
    """SpatialStore with a short fix timeout so timeout paths stay fast."""
    return SpatialStore(
        gateway,
        location_provider,
        search_radius=5000,
        fix_timeout_s=0.2,
        max_fix_age_s=10,
        high_accuracy=True,
    )


@pytest.fixture
def kitchener_places():
    """p1 at 4800 m and p2 at 5200 m north of Kitchener."""
    lat, lon = KITCHENER
    return (
        place_north_of(lat, lon, 4800, "p1", "Near Diner"),
        place_north_of(lat, lon, 5200, "p2", "Far Bistro"),
    )


@pytest.fixture
def notes_sync():
    from placemarker.dependencies import LocalIdentity

    return NotesSyncService(InMemoryNoteStore(), LocalIdentity(uid="u-test"))


def mock_http_client(handler) -> httpx.AsyncClient:
    """httpx client whose requests are answered by `handler(request)`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest_asyncio.fixture
async def api_client(store, location_provider, notes_sync):
    """
    ASGI client for the app with the per-test store, location provider and
    in-memory notes injected. Discovery stays on the app default (no API
    key, so every search is empty) unless a test overrides it.
    """
    from placemarker.dependencies import (
        get_location_provider,
        get_notes_sync,
        get_spatial_store,
    )
    from placemarker.main import app

    app.dependency_overrides[get_spatial_store] = lambda: store
    app.dependency_overrides[get_location_provider] = lambda: location_provider
    app.dependency_overrides[get_notes_sync] = lambda: notes_sync

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
