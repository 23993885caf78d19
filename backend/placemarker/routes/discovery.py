"""
PlaceMarker API: Discovery Routes
=================================

What:  Finding candidate places to mark: nearby the user, by free text, or by
       provider id. Each candidate says whether it is already saved.
How:   Delegates to PlacesDiscoveryClient, which never raises; provider
       failures show up as empty lists.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from placemarker.dependencies import get_discovery_client, get_spatial_store
from placemarker.exceptions import LocationUnavailableError, NotFoundError
from placemarker.schemas.common import ErrorResponse
from placemarker.schemas.discovery import CandidateListResponse, CandidateResponse
from placemarker.services.discovery import CandidatePlace, PlacesDiscoveryClient
from placemarker.services.geofence import nearest_first
from placemarker.store.spatial_store import SpatialStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/discovery", tags=["Discovery"])


def _annotate(
    candidate: CandidatePlace,
    store: SpatialStore,
    client: PlacesDiscoveryClient,
) -> CandidateResponse:
    return CandidateResponse(
        **candidate.model_dump(),
        saved=store.state.is_saved(candidate.id),
        photo_url=client.photo_url(candidate.photo_reference) if candidate.photo_reference else None,
    )


def _listing(candidates: List[CandidatePlace], store, client) -> CandidateListResponse:
    annotated = [_annotate(c, store, client) for c in candidates]
    return CandidateListResponse(candidates=annotated, count=len(annotated))


@router.get(
    "/nearby",
    response_model=CandidateListResponse,
    responses={503: {"description": "User location not known yet", "model": ErrorResponse}},
    summary="Places near the user location, nearest first",
)
async def nearby(
    radius_m: Optional[float] = Query(default=None, gt=0, description="Defaults to the search radius"),
    store: SpatialStore = Depends(get_spatial_store),
    client: PlacesDiscoveryClient = Depends(get_discovery_client),
) -> CandidateListResponse:
    location = store.user_location
    if location is None:
        raise LocationUnavailableError(message="User location is not known yet; refresh it first")

    candidates = await client.search_nearby(location, radius_m or store.search_radius)
    return _listing(nearest_first(location, candidates), store, client)


@router.get("/search", response_model=CandidateListResponse, summary="Free-text place search")
async def search(
    q: str = Query(min_length=1, max_length=200, description="Search text, e.g. 'ramen kitchener'"),
    store: SpatialStore = Depends(get_spatial_store),
    client: PlacesDiscoveryClient = Depends(get_discovery_client),
) -> CandidateListResponse:
    return _listing(await client.search_text(q), store, client)


@router.get(
    "/places/{place_id}",
    response_model=CandidateResponse,
    responses={404: {"description": "Unknown place or lookup failed", "model": ErrorResponse}},
    summary="Provider details for one place",
)
async def details(
    place_id: str,
    store: SpatialStore = Depends(get_spatial_store),
    client: PlacesDiscoveryClient = Depends(get_discovery_client),
) -> CandidateResponse:
    candidate = await client.place_details(place_id)
    if candidate is None:
        raise NotFoundError(resource="Place", resource_id=place_id)
    return _annotate(candidate, store, client)
