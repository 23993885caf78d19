"""
PlaceMarker Core: Domain Value Objects
======================================

What:  Immutable Pydantic models shared by the store, the adapters and the
       API schemas: Coordinate, Region, Place, Fix, Note.
How:   All models are frozen, so a state snapshot built from them can never
       be modified after publication. Frozen models are also hashable and
       compare by value.
"""

import time
from typing import Optional

from pydantic import BaseModel, Field

# What: Viewport span used when a fix becomes the user location.
DEFAULT_REGION_DELTA = 0.0922


class Coordinate(BaseModel):
    """A WGS84 point in decimal degrees."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    model_config = {"frozen": True}


class Region(Coordinate):
    """
    A map viewport: center plus the visible span on each axis.

    Used both for user_location (last device fix) and current_region (last
    map viewport); the two are owned independently.
    """

    latitude_delta: float = Field(default=DEFAULT_REGION_DELTA, gt=0, alias="latitudeDelta")
    longitude_delta: float = Field(default=DEFAULT_REGION_DELTA, gt=0, alias="longitudeDelta")

    model_config = {"frozen": True, "populate_by_name": True}


class Place(BaseModel):
    """
    A marked place (a "restaurant" in the app).

    id is issued by the place provider and is unique within SavedPlaces.
    """

    id: str = Field(min_length=1)
    name: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: Optional[str] = None

    model_config = {"frozen": True}


class Fix(Coordinate):
    """A raw device position fix, stamped with the monotonic time it was taken."""

    accuracy_m: Optional[float] = Field(default=None, ge=0)
    taken_at: float = Field(default_factory=time.monotonic)

    def age(self, now: Optional[float] = None) -> float:
        return (time.monotonic() if now is None else now) - self.taken_at

    def to_region(self, delta: float = DEFAULT_REGION_DELTA) -> Region:
        return Region(
            latitude=self.latitude,
            longitude=self.longitude,
            latitude_delta=delta,
            longitude_delta=delta,
        )


class Note(BaseModel):
    """A private note: at most one per (place_id, uid)."""

    place_id: str
    uid: str
    text: str

    model_config = {"frozen": True}
