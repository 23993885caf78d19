"""
PlaceMarker API: Location Routes
================================

What:  Refreshing the user location, and the endpoints through which the
       device reports its permission decision and raw position fixes.

Typical client flow:
    POST /api/device/fix         (whenever the OS delivers a position)
    POST /api/location/refresh   (uses a fix no older than 10 s, otherwise
                                  waits up to 15 s for the next report)
"""

import logging

from fastapi import APIRouter, Depends

from placemarker.dependencies import get_location_provider, get_spatial_store
from placemarker.schemas.place import (
    DeviceStatusResponse,
    FixReport,
    LocationRefreshResponse,
    PermissionReport,
)
from placemarker.services.location import ReportedLocationProvider
from placemarker.store.spatial_store import SpatialStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Location"])


def _device_status(provider: ReportedLocationProvider) -> DeviceStatusResponse:
    return DeviceStatusResponse(
        permission=provider.permission,
        has_fix=provider.latest_fix is not None,
    )


@router.post(
    "/location/refresh",
    response_model=LocationRefreshResponse,
    summary="Acquire a fresh user location",
    description=(
        "Requests a device fix and, on success, stores it as the user location. "
        "A denied permission or a timeout is reported as located=false with the "
        "previous location left unchanged."
    ),
)
async def refresh_location(store: SpatialStore = Depends(get_spatial_store)) -> LocationRefreshResponse:
    located = await store.refresh_user_location()
    await store.settle()
    return LocationRefreshResponse(
        located=located,
        user_location=store.user_location,
        visible=list(store.visible_restaurants),
    )


@router.get("/device", response_model=DeviceStatusResponse, summary="Reported device location status")
async def device_status(
    provider: ReportedLocationProvider = Depends(get_location_provider),
) -> DeviceStatusResponse:
    return _device_status(provider)


@router.post("/device/permission", response_model=DeviceStatusResponse, summary="Report a permission decision")
async def report_permission(
    body: PermissionReport,
    provider: ReportedLocationProvider = Depends(get_location_provider),
) -> DeviceStatusResponse:
    await provider.report_permission(body.granted)
    return _device_status(provider)


@router.post("/device/fix", response_model=DeviceStatusResponse, summary="Report a raw position fix")
async def report_fix(
    body: FixReport,
    provider: ReportedLocationProvider = Depends(get_location_provider),
) -> DeviceStatusResponse:
    await provider.report_fix(body.to_fix())
    return _device_status(provider)
