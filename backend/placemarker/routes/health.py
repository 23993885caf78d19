"""
PlaceMarker API: Health Check Route
===================================

What:  Liveness plus a probe of each dependency.

Status levels:
    healthy:   local store reachable, remote notes reachable (or local)
    degraded:  remote notes unreachable; marking places still works
    unhealthy: local store unreachable
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from placemarker import __version__
from placemarker.config import settings
from placemarker.database import engine
from placemarker.dependencies import get_discovery_client, get_notes_sync, get_spatial_store
from placemarker.schemas.common import HealthResponse
from placemarker.services.discovery import PlacesDiscoveryClient
from placemarker.services.notes_sync import NotesSyncService
from placemarker.store.spatial_store import SpatialStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(
    store: SpatialStore = Depends(get_spatial_store),
    notes: NotesSyncService = Depends(get_notes_sync),
    discovery: PlacesDiscoveryClient = Depends(get_discovery_client),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: local store unreachable: %s", e)

    if settings.remote_notes_enabled:
        notes_status = "available" if await notes.health_check() else "unavailable"
        if notes_status == "unavailable" and overall == "healthy":
            overall = "degraded"
    else:
        notes_status = "local"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        notes=notes_status,
        discovery="enabled" if discovery.enabled else "disabled",
        saved_places=len(store.saved_restaurants),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
