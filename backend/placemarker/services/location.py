"""
PlaceMarker Core: Device Location Provider
==========================================

What:  The seam between SpatialStore and the device's permission prompt and
       position fixes.
How:   LocationProvider is the abstract contract. ReportedLocationProvider is
       the implementation used by the service: the UI client reports its
       permission decision and raw fixes over HTTP, and current_position()
       hands out the latest fix if it is recent enough, otherwise waits for
       the next report.
Who:   SpatialStore.refresh_user_location() is the only caller of
       current_position(); it bounds the wait with the fix timeout.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from placemarker.domain import Fix
from placemarker.exceptions import PermissionDeniedError

logger = logging.getLogger(__name__)


class LocationProvider(ABC):
    """
    Contract for a source of device positions.

    request_permission():
        True if location access is (or may be) granted, False if denied.
    current_position(high_accuracy, maximum_age_s):
        A fix no older than maximum_age_s. May suspend until one arrives.
        Raises LocationUnavailableError or PermissionDeniedError.
    """

    @abstractmethod
    async def request_permission(self) -> bool:
        ...

    @abstractmethod
    async def current_position(self, *, high_accuracy: bool, maximum_age_s: float) -> Fix:
        ...


class ReportedLocationProvider(LocationProvider):
    """
    Location fed by the client device.

    Permission starts unknown, which counts as granted: the device shows its
    own prompt and reports a denial if the user declines.
    The accuracy of a reported fix is whatever the device supplied, so
    high_accuracy is not enforced here.
    """

    def __init__(self):
        self._granted: Optional[bool] = None
        self._latest: Optional[Fix] = None
        self._changed = asyncio.Condition()

    @property
    def permission(self) -> Optional[bool]:
        return self._granted

    @property
    def latest_fix(self) -> Optional[Fix]:
        return self._latest

    async def report_permission(self, granted: bool) -> None:
        async with self._changed:
            self._granted = granted
            self._changed.notify_all()
        logger.info("Device location permission %s", "granted" if granted else "denied")

    async def report_fix(self, fix: Fix) -> None:
        async with self._changed:
            self._granted = True
            self._latest = fix
            self._changed.notify_all()
        logger.debug("Device fix reported: %.6f, %.6f", fix.latitude, fix.longitude)

    async def request_permission(self) -> bool:
        return self._granted is not False

    async def current_position(self, *, high_accuracy: bool, maximum_age_s: float) -> Fix:
        previous = self._latest
        if previous is not None and previous.age() <= maximum_age_s:
            return previous

        async with self._changed:
            await self._changed.wait_for(
                lambda: self._granted is False or self._latest is not previous
            )
            if self._granted is False:
                raise PermissionDeniedError()
            return self._latest


# ── Singleton Instance ───────────────────────────────────────────────────
location_provider = ReportedLocationProvider()
