"""
PlaceMarker Core: Geofence Engine
=================================

What:  Pure spatial classification: great-circle distance and the
       "which saved places are within the radius" filter.
How:   Haversine formula on a spherical Earth (R = 6371e3 m).
Who:   Called by SpatialStore whenever location, saved places or radius change.

No side effects, no I/O and no failure modes. Callers must not invoke
compute_visible without a location; "no location yet" means an empty
visible set and is handled by the caller.
"""

import math
from typing import Iterable, List, Protocol, Sequence, TypeVar

EARTH_RADIUS_M = 6371e3


class HasCoordinates(Protocol):
    latitude: float
    longitude: float


P = TypeVar("P", bound=HasCoordinates)


def distance(a: HasCoordinates, b: HasCoordinates) -> float:
    """
    Great-circle distance between two points, in meters.

    Symmetric, and valid for any hemisphere or sign of the coordinates.
    """
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Rounding can push h a hair above 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_within(location: HasCoordinates, point: HasCoordinates, radius_m: float) -> bool:
    """Boundary-inclusive membership test."""
    return distance(location, point) <= radius_m


def compute_visible(
    location: HasCoordinates, saved: Iterable[P], radius_m: float
) -> List[P]:
    """
    Every place in `saved` within `radius_m` meters of `location`.

    Keeps the relative order of `saved`. Monotonic in the radius: a larger
    radius never drops a member, a smaller one never adds one.
    """
    return [place for place in saved if is_within(location, place, radius_m)]


def nearest_first(location: HasCoordinates, places: Sequence[P]) -> List[P]:
    """Places ordered by distance from `location` (stable for ties)."""
    return sorted(places, key=lambda place: distance(location, place))
