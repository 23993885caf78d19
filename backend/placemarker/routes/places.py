"""
PlaceMarker API: Saved Places & Spatial State Routes
====================================================

What:  The read/write surface of SpatialStore over HTTP: the state snapshot,
       saved places, the visible set, the search radius and the viewport.
How:   Thin handlers. Reads await store.settle() first so the visible set
       they return already reflects the latest change.
Who:   The map screen (markers, list, radius slider) of the client app.
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from placemarker.dependencies import get_spatial_store
from placemarker.domain import Place, Region
from placemarker.schemas.common import ErrorResponse
from placemarker.schemas.place import (
    MarkResponse,
    PlaceListResponse,
    SearchRadiusRequest,
    SearchRadiusResponse,
    StateResponse,
)
from placemarker.store.spatial_store import SpatialStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Places"])


@router.get("/state", response_model=StateResponse, summary="Current spatial state snapshot")
async def get_state(store: SpatialStore = Depends(get_spatial_store)) -> StateResponse:
    await store.settle()
    return StateResponse.from_state(store.state)


@router.get("/places", response_model=PlaceListResponse, summary="Saved places in display order")
async def list_saved_places(store: SpatialStore = Depends(get_spatial_store)) -> PlaceListResponse:
    return PlaceListResponse.of(store.saved_restaurants)


@router.get(
    "/places/visible",
    response_model=PlaceListResponse,
    summary="Saved places within the search radius of the user",
)
async def list_visible_places(store: SpatialStore = Depends(get_spatial_store)) -> PlaceListResponse:
    await store.settle()
    return PlaceListResponse.of(store.visible_restaurants)


@router.post(
    "/places",
    response_model=MarkResponse,
    responses={
        201: {"description": "Place saved"},
        200: {"description": "Place was already saved; nothing changed"},
    },
    summary="Mark a place",
)
async def add_place(
    place: Place,
    response: Response,
    store: SpatialStore = Depends(get_spatial_store),
) -> MarkResponse:
    result = await store.add_restaurant(place)
    response.status_code = status.HTTP_201_CREATED if result.changed else status.HTTP_200_OK
    return MarkResponse.from_result(result, place.id, saved=True)


@router.post("/places/toggle", response_model=MarkResponse, summary="Mark or unmark a place")
async def toggle_place(place: Place, store: SpatialStore = Depends(get_spatial_store)) -> MarkResponse:
    result = await store.toggle_restaurant(place)
    return MarkResponse.from_result(result, place.id, saved=store.state.is_saved(place.id))


@router.delete("/places/{place_id}", response_model=MarkResponse, summary="Unmark a place")
async def remove_place(place_id: str, store: SpatialStore = Depends(get_spatial_store)) -> MarkResponse:
    # Unmarking a place that is not saved reports changed=false
    result = await store.remove_restaurant(place_id)
    return MarkResponse.from_result(result, place_id, saved=False)


@router.delete("/places", response_model=MarkResponse, summary="Unmark every place")
async def clear_places(store: SpatialStore = Depends(get_spatial_store)) -> MarkResponse:
    result = await store.clear_all_restaurants()
    logger.info("Cleared saved places (changed=%s)", result.changed)
    return MarkResponse.from_result(result, None, saved=False)


@router.put(
    "/search-radius",
    response_model=SearchRadiusResponse,
    responses={400: {"description": "Radius is not positive", "model": ErrorResponse}},
    summary="Change the search radius",
)
async def set_search_radius(
    body: SearchRadiusRequest,
    store: SpatialStore = Depends(get_spatial_store),
) -> SearchRadiusResponse:
    store.set_search_radius(body.radius_m)
    await store.settle()
    return SearchRadiusResponse(
        radius_m=store.search_radius,
        visible=list(store.visible_restaurants),
    )


@router.put("/region", response_model=Region, summary="Record the current map viewport")
async def set_region(region: Region, store: SpatialStore = Depends(get_spatial_store)) -> Region:
    store.set_current_region(region)
    return store.current_region
