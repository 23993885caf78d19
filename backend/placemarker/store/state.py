"""
PlaceMarker Core: Spatial State & Transitions
=============================================

What:  The immutable state snapshot owned by SpatialStore, the actions that
       describe every transition, and the pure reducer applying them.
How:   reduce(state, action) never mutates its input. It returns the same
       object when an action changes nothing, and a new snapshot otherwise,
       so readers never see a half-applied update.

Actions:
    UserLocated         → replace user_location
    RegionChanged       → replace current_region
    PlaceAdded          → append unless the id is already saved
    PlaceRemoved        → drop from saved and visible
    SavedPlacesLoaded   → replace saved (deduplicated, order kept)
    SavedPlacesCleared  → empty saved and visible
    RadiusChanged       → replace search_radius
    VisibleSetComputed  → replace visible (issued by the store only)
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from placemarker.domain import Place, Region

DEFAULT_SEARCH_RADIUS_M = 5000.0


class SpatialState(BaseModel):
    user_location: Optional[Region] = None
    current_region: Optional[Region] = None
    saved: Tuple[Place, ...] = ()
    visible: Tuple[Place, ...] = ()
    search_radius: float = Field(default=DEFAULT_SEARCH_RADIUS_M, gt=0)

    model_config = {"frozen": True}

    def is_saved(self, place_id: str) -> bool:
        return any(place.id == place_id for place in self.saved)

    def visibility_inputs(self) -> tuple:
        """The three inputs the visible set is derived from."""
        return (self.user_location, self.saved, self.search_radius)


@dataclass(frozen=True)
class UserLocated:
    region: Region


@dataclass(frozen=True)
class RegionChanged:
    region: Region


@dataclass(frozen=True)
class PlaceAdded:
    place: Place


@dataclass(frozen=True)
class PlaceRemoved:
    place_id: str


@dataclass(frozen=True)
class SavedPlacesLoaded:
    places: Tuple[Place, ...]


@dataclass(frozen=True)
class SavedPlacesCleared:
    pass


@dataclass(frozen=True)
class RadiusChanged:
    radius: float


@dataclass(frozen=True)
class VisibleSetComputed:
    visible: Tuple[Place, ...]


Action = Union[
    UserLocated,
    RegionChanged,
    PlaceAdded,
    PlaceRemoved,
    SavedPlacesLoaded,
    SavedPlacesCleared,
    RadiusChanged,
    VisibleSetComputed,
]


def _unique_by_id(places: Sequence[Place]) -> Tuple[Place, ...]:
    seen = set()
    unique = []
    for place in places:
        if place.id not in seen:
            seen.add(place.id)
            unique.append(place)
    return tuple(unique)


def reduce(state: SpatialState, action: Action) -> SpatialState:
    """Apply one action. Pure; returns `state` itself when nothing changes."""
    if isinstance(action, UserLocated):
        if action.region == state.user_location:
            return state
        return state.model_copy(update={"user_location": action.region})

    if isinstance(action, RegionChanged):
        return state.model_copy(update={"current_region": action.region})

    if isinstance(action, PlaceAdded):
        if state.is_saved(action.place.id):
            return state
        return state.model_copy(update={"saved": state.saved + (action.place,)})

    if isinstance(action, PlaceRemoved):
        if not state.is_saved(action.place_id):
            return state
        return state.model_copy(
            update={
                "saved": tuple(p for p in state.saved if p.id != action.place_id),
                "visible": tuple(p for p in state.visible if p.id != action.place_id),
            }
        )

    if isinstance(action, SavedPlacesLoaded):
        return state.model_copy(update={"saved": _unique_by_id(action.places)})

    if isinstance(action, SavedPlacesCleared):
        if not state.saved and not state.visible:
            return state
        return state.model_copy(update={"saved": (), "visible": ()})

    if isinstance(action, RadiusChanged):
        if action.radius == state.search_radius:
            return state
        return state.model_copy(update={"search_radius": action.radius})

    if isinstance(action, VisibleSetComputed):
        return state.model_copy(update={"visible": action.visible})

    raise TypeError(f"Unknown action: {action!r}")
