"""
PlaceMarker Core: Spatial Store
===============================

What:  The single authoritative in-memory state (user location, viewport,
       saved places, radius, visible set) and the orchestration around it.
       The only component the UI layer talks to for spatial data.
How:   Every change goes through _dispatch(), which applies the pure reducer
       and swaps the whole snapshot. When user_location, saved places or the
       radius change, a visible-set recomputation is scheduled on the event
       loop and published to subscribers.

Ordering:
    The in-memory part of a mark/unmark is applied before the call suspends
    for the durable-store write. Durable writes are queued on one lock
    in that same order, so a mark and an unmark racing on one id commit as
    they were applied in memory. The visible set follows one scheduling
    cycle later; await settle() to observe it.

Concurrent location refreshes:
    Each refresh takes a ticket when it starts. A fix is applied only if no
    later-started refresh has applied one already, so the newest request
    wins regardless of which device answer arrives last.
"""

import asyncio
import logging
import math
from typing import Callable, List, Optional, Tuple

from placemarker.config import settings
from placemarker.domain import Place, Region
from placemarker.exceptions import (
    LocationUnavailableError,
    PermissionDeniedError,
    ValidationError,
)
from placemarker.results import MarkResult, Outcome
from placemarker.services.geofence import compute_visible
from placemarker.services.location import LocationProvider, location_provider
from placemarker.services.persistence_gateway import PersistenceGateway, persistence_gateway
from placemarker.store.state import (
    Action,
    PlaceAdded,
    PlaceRemoved,
    RadiusChanged,
    RegionChanged,
    SavedPlacesCleared,
    SavedPlacesLoaded,
    SpatialState,
    UserLocated,
    VisibleSetComputed,
    reduce,
)

logger = logging.getLogger(__name__)

VisibleListener = Callable[[Tuple[Place, ...]], None]


class SpatialStore:
    """
    Reactive container for spatial state.

    Read surface:
        state, user_location, current_region, saved_restaurants,
        visible_restaurants, search_radius, subscribe(), settle()

    Write surface:
        hydrate(), refresh_user_location(), set_current_region(),
        add_restaurant(), remove_restaurant(), toggle_restaurant(),
        clear_all_restaurants(), set_search_radius()
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        location_provider: LocationProvider,
        search_radius: Optional[float] = None,
        fix_timeout_s: Optional[float] = None,
        max_fix_age_s: Optional[float] = None,
        high_accuracy: Optional[bool] = None,
        region_delta: Optional[float] = None,
    ):
        self._gateway = gateway
        self._location = location_provider
        self._fix_timeout_s = fix_timeout_s if fix_timeout_s is not None else settings.location_timeout_s
        self._max_fix_age_s = max_fix_age_s if max_fix_age_s is not None else settings.location_max_age_s
        self._high_accuracy = high_accuracy if high_accuracy is not None else settings.location_high_accuracy
        self._region_delta = region_delta if region_delta is not None else settings.region_delta

        self._state = SpatialState(
            search_radius=search_radius if search_radius is not None else settings.default_search_radius_m
        )
        self._listeners: List[VisibleListener] = []
        self._pending: Optional[asyncio.Handle] = None
        self._pending_loop: Optional[asyncio.AbstractEventLoop] = None

        self._refresh_started = 0
        self._refresh_applied = 0

        # Durable writes run in the order their in-memory changes were applied
        self._write_lock = asyncio.Lock()

    # ── Read Surface ──────────────────────────────────────────────────────

    @property
    def state(self) -> SpatialState:
        return self._state

    @property
    def user_location(self) -> Optional[Region]:
        return self._state.user_location

    @property
    def current_region(self) -> Optional[Region]:
        return self._state.current_region

    @property
    def saved_restaurants(self) -> Tuple[Place, ...]:
        return self._state.saved

    @property
    def visible_restaurants(self) -> Tuple[Place, ...]:
        return self._state.visible

    @property
    def search_radius(self) -> float:
        return self._state.search_radius

    def subscribe(self, listener: VisibleListener) -> Callable[[], None]:
        """
        Call `listener(visible)` after every visible-set recomputation.

        Returns a function that removes the subscription.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def settle(self) -> None:
        """Wait until any scheduled recomputation has been published."""
        while self._pending is not None:
            if self._pending_loop is not asyncio.get_running_loop():
                # Scheduled on a loop that is no longer running; do it here.
                self._pending.cancel()
                self._recompute()
                return
            await asyncio.sleep(0)

    # ── Startup ───────────────────────────────────────────────────────────

    async def hydrate(self) -> Outcome[int]:
        """
        Load SavedPlaces from the durable store, which is the source of
        truth at startup. Value is the number of places loaded.
        """
        schema = await self._gateway.ensure_schema()
        if not schema.ok:
            return Outcome.failure(schema.error)

        fetched = await self._gateway.fetch_all()
        if not fetched.ok:
            logger.error("Could not hydrate saved places; starting empty")
            return Outcome.failure(fetched.error)

        self._dispatch(SavedPlacesLoaded(tuple(fetched.value or ())))
        count = len(self._state.saved)
        logger.info("Hydrated %d saved places from the local store", count)
        return Outcome.success(count)

    # ── Location ──────────────────────────────────────────────────────────

    async def refresh_user_location(self) -> bool:
        """
        Ask for permission, then for a device fix.

        Returns True once user_location holds a fresh fix. Returns False and
        leaves the state untouched when permission is denied or no fix
        arrives within the timeout. Never raises for either case.
        """
        self._refresh_started += 1
        ticket = self._refresh_started

        if not await self._location.request_permission():
            logger.info("Location permission denied; user location unchanged")
            return False

        try:
            fix = await asyncio.wait_for(
                self._location.current_position(
                    high_accuracy=self._high_accuracy,
                    maximum_age_s=self._max_fix_age_s,
                ),
                timeout=self._fix_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("No location fix within %.0fs", self._fix_timeout_s)
            return False
        except PermissionDeniedError:
            logger.info("Location permission denied while waiting for a fix")
            return False
        except LocationUnavailableError as e:
            logger.warning("Location unavailable: %s", e.message)
            return False

        if ticket < self._refresh_applied:
            logger.info(
                "Discarding fix from location refresh #%d; #%d already applied",
                ticket,
                self._refresh_applied,
            )
            return True

        self._refresh_applied = ticket
        self._dispatch(UserLocated(fix.to_region(self._region_delta)))
        logger.debug("User location updated to %.6f, %.6f", fix.latitude, fix.longitude)
        return True

    def set_current_region(self, region: Region) -> None:
        """Replace the map viewport. Independent of user_location."""
        self._dispatch(RegionChanged(region))

    # ── Saved Places ──────────────────────────────────────────────────────

    async def add_restaurant(self, place: Place) -> MarkResult:
        """Insert-if-absent by id, mirrored into the durable store."""
        before = self._state
        if self._dispatch(PlaceAdded(place)) is before:
            logger.debug("Place %s already saved; add ignored", place.id)
            return MarkResult(changed=False)

        async with self._write_lock:
            storage = await self._gateway.insert(place)
        if not storage.ok:
            logger.error("Place %s saved in memory but not in the local store", place.id)
        return MarkResult(changed=True, storage=storage)

    async def remove_restaurant(self, place_id: str) -> MarkResult:
        """Drop from saved and visible places and from the durable store."""
        before = self._state
        if self._dispatch(PlaceRemoved(place_id)) is before:
            return MarkResult(changed=False)

        async with self._write_lock:
            storage = await self._gateway.delete_by_place_id(place_id)
        if not storage.ok:
            logger.error("Place %s removed in memory but not from the local store", place_id)
        return MarkResult(changed=True, storage=storage)

    async def toggle_restaurant(self, place: Place) -> MarkResult:
        if self._state.is_saved(place.id):
            return await self.remove_restaurant(place.id)
        return await self.add_restaurant(place)

    async def clear_all_restaurants(self) -> MarkResult:
        before = self._state
        self._dispatch(SavedPlacesCleared())
        async with self._write_lock:
            storage = await self._gateway.clear()
        return MarkResult(changed=bool(before.saved), storage=storage)

    # ── Radius ────────────────────────────────────────────────────────────

    def set_search_radius(self, value: float) -> None:
        """Replace the search radius (meters). Must be a positive number."""
        if (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or not math.isfinite(value)
            or value <= 0
        ):
            raise ValidationError(
                message=f"Search radius must be a positive number of meters, got {value!r}",
                field="search_radius",
            )
        self._dispatch(RadiusChanged(float(value)))

    # ── Internals ─────────────────────────────────────────────────────────

    def _dispatch(self, action: Action) -> SpatialState:
        previous = self._state
        current = reduce(previous, action)
        if current is previous:
            return previous

        self._state = current
        if current.visibility_inputs() != previous.visibility_inputs():
            self._schedule_recompute()
        return current

    def _schedule_recompute(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._recompute()
            return

        if self._pending is not None:
            if self._pending_loop is loop:
                return  # coalesced; it reads the latest inputs when it runs
            self._pending.cancel()

        self._pending_loop = loop
        self._pending = loop.call_soon(self._recompute)

    def _recompute(self) -> None:
        self._pending = None
        self._pending_loop = None

        state = self._state
        if state.user_location is None:
            visible: Tuple[Place, ...] = ()
        else:
            visible = tuple(
                compute_visible(state.user_location, state.saved, state.search_radius)
            )
        self._state = reduce(state, VisibleSetComputed(visible))

        for listener in list(self._listeners):
            try:
                listener(visible)
            except Exception:
                logger.exception("Visible-set listener %r failed", listener)


# ── Singleton Instance ───────────────────────────────────────────────────
spatial_store = SpatialStore(persistence_gateway, location_provider)
