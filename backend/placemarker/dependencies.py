"""
PlaceMarker API: Dependency Providers
=====================================

What:  FastAPI dependency functions handing routes their collaborators.
How:   The spatial store and the location provider are module singletons.
       The notes and discovery services share one httpx.AsyncClient and are
       built on first use, so importing the app never opens a connection.
Who:   Routes declare `Depends(get_...)`; tests replace any of them through
       `app.dependency_overrides`.

Notes backend selection:
    FIREBASE_DATABASE_URL set   → FirebaseNoteStore + FirebaseAnonymousIdentity
    FIREBASE_DATABASE_URL unset → InMemoryNoteStore + a fixed local identity
"""

import logging
import math
from typing import Optional

import httpx

from placemarker.config import settings
from placemarker.database import engine
from placemarker.services.discovery import PlacesDiscoveryClient
from placemarker.services.identity import (
    FirebaseAnonymousIdentity,
    Identity,
    IdentityProvider,
    IdentityRepository,
)
from placemarker.services.location import ReportedLocationProvider, location_provider
from placemarker.services.note_store import FirebaseNoteStore, InMemoryNoteStore
from placemarker.services.notes_sync import NotesSyncService
from placemarker.store.spatial_store import SpatialStore, spatial_store

logger = logging.getLogger(__name__)

LOCAL_UID = "local-device"

_http_client: Optional[httpx.AsyncClient] = None
_notes_sync: Optional[NotesSyncService] = None
_discovery: Optional[PlacesDiscoveryClient] = None


class LocalIdentity(IdentityProvider):
    """Identity used with the in-process note store; it never expires."""

    def __init__(self, uid: str = LOCAL_UID):
        self._identity = Identity(uid=uid, id_token="", refresh_token="", expires_at=math.inf)

    async def resolve(self) -> Identity:
        return self._identity

    def invalidate(self) -> None:
        pass


def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.http_timeout_s)
    return _http_client


async def close_http_client() -> None:
    """Close the shared HTTP client. Called on application shutdown."""
    global _http_client, _notes_sync, _discovery
    if _http_client is not None:
        await _http_client.aclose()
        logger.info("Shared HTTP client closed")
    _http_client = None
    _notes_sync = None
    _discovery = None


def get_spatial_store() -> SpatialStore:
    return spatial_store


def get_location_provider() -> ReportedLocationProvider:
    return location_provider


def get_notes_sync() -> NotesSyncService:
    global _notes_sync
    if _notes_sync is None:
        if settings.remote_notes_enabled:
            http_client = get_http_client()
            store = FirebaseNoteStore(
                database_url=settings.firebase_database_url,
                http_client=http_client,
                collection=settings.notes_collection,
            )
            identity: IdentityProvider = FirebaseAnonymousIdentity(
                api_key=settings.firebase_api_key,
                http_client=http_client,
                repository=IdentityRepository(engine),
                identity_toolkit_url=settings.identity_toolkit_url,
                secure_token_url=settings.secure_token_url,
            )
            logger.info("Notes backed by Firebase collection '%s'", settings.notes_collection)
        else:
            store = InMemoryNoteStore()
            identity = LocalIdentity()
            logger.warning("FIREBASE_DATABASE_URL not set; notes kept in memory only")
        _notes_sync = NotesSyncService(store, identity)
    return _notes_sync


def get_discovery_client() -> PlacesDiscoveryClient:
    global _discovery
    if _discovery is None:
        _discovery = PlacesDiscoveryClient(
            api_key=settings.google_maps_api_key,
            http_client=get_http_client(),
            base_url=settings.places_base_url,
            search_type=settings.places_search_type,
        )
    return _discovery
