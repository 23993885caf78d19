"""
PlaceMarker API: Spatial Schemas
================================

What:  Request and response bodies for saved places, the search radius, the
       map viewport, and the device location endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from placemarker.domain import Fix, Place, Region
from placemarker.results import MarkResult
from placemarker.store.state import SpatialState


class PlaceListResponse(BaseModel):
    places: List[Place] = Field(description="Places in display (insertion) order")
    count: int

    @classmethod
    def of(cls, places) -> "PlaceListResponse":
        return cls(places=list(places), count=len(places))


class MarkResponse(BaseModel):
    """
    Result of a mark/unmark/clear action.

    changed:   whether the in-memory saved set changed
    persisted: whether the local store write succeeded (null when no write
               was issued)
    """

    place_id: Optional[str] = None
    saved: bool = Field(description="Whether the place is saved after the action")
    changed: bool
    persisted: Optional[bool] = None
    storage_error: Optional[str] = None

    @classmethod
    def from_result(cls, result: MarkResult, place_id: Optional[str], saved: bool) -> "MarkResponse":
        storage = result.storage
        return cls(
            place_id=place_id,
            saved=saved,
            changed=result.changed,
            persisted=None if storage is None else storage.ok,
            storage_error=None if storage is None or storage.ok else storage.error.message,
        )


class SearchRadiusRequest(BaseModel):
    # Range checks belong to the store; it answers with a 400 ValidationError.
    radius_m: float = Field(description="New search radius in meters")


class SearchRadiusResponse(BaseModel):
    radius_m: float
    visible: List[Place]


class StateResponse(BaseModel):
    user_location: Optional[Region] = None
    current_region: Optional[Region] = None
    search_radius: float
    saved: List[Place]
    visible: List[Place]

    @classmethod
    def from_state(cls, state: SpatialState) -> "StateResponse":
        return cls(
            user_location=state.user_location,
            current_region=state.current_region,
            search_radius=state.search_radius,
            saved=list(state.saved),
            visible=list(state.visible),
        )


class LocationRefreshResponse(BaseModel):
    located: bool = Field(description="True when user_location holds a fresh fix")
    user_location: Optional[Region] = None
    visible: List[Place]


class PermissionReport(BaseModel):
    granted: bool


class FixReport(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy_m: Optional[float] = Field(default=None, ge=0)

    def to_fix(self) -> Fix:
        return Fix(latitude=self.latitude, longitude=self.longitude, accuracy_m=self.accuracy_m)


class DeviceStatusResponse(BaseModel):
    permission: Optional[bool] = Field(description="null until the device reports a decision")
    has_fix: bool
