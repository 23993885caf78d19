"""
PlaceMarker Core: Explicit Operation Results
============================================

What:  Outcome and MarkResult, the values returned by every persistence and
       sync call instead of fire-and-forget callbacks.
How:   An Outcome is either a success holding a value or a failure holding a
       typed PlaceMarkerError. Callers branch on `ok`, read `value`, or call
       `unwrap()` to turn a failure back into an exception.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from placemarker.exceptions import PlaceMarkerError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of an adapter call: ok + value, or an error."""

    ok: bool
    value: Optional[T] = None
    error: Optional[PlaceMarkerError] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls, error: PlaceMarkerError, value: Optional[T] = None
    ) -> "Outcome[T]":
        """A failed outcome. `value` may carry a fallback (e.g. a placeholder note)."""
        return cls(ok=False, value=value, error=error)

    def unwrap(self) -> Optional[T]:
        """Return the value, or raise the carried error."""
        if not self.ok:
            raise self.error or PlaceMarkerError()
        return self.value


@dataclass(frozen=True)
class MarkResult:
    """
    Result of a mark/unmark action on the SpatialStore.

    changed:  whether the in-memory SavedPlaces changed
    storage:  outcome of the mirrored durable-store write (None when no
              write was issued because nothing changed)
    """

    changed: bool
    storage: Optional[Outcome] = None

    @property
    def persisted(self) -> bool:
        return self.storage is not None and self.storage.ok
