"""
PlaceMarker Core: Notes Sync Service
====================================

What:  Keeps at most one private note per (place, identity) in the remote
       note store.
How:   Resolves the anonymous identity lazily, derives the composite storage
       key with note_key(), and reads or writes that single key. Every call
       returns an Outcome; identity and remote failures never escape.
Who:   Called directly by the notes routes (the spatial path is not involved).

Flow (save_note):
    validate → resolve identity → PUT record under "<uid>:<placeId>"
    A 401 from the store invalidates the cached token and the request is
    replayed once with fresh credentials.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from placemarker.domain import Note
from placemarker.exceptions import (
    IdentityUnavailableError,
    NoteSyncError,
    ValidationError,
)
from placemarker.results import Outcome
from placemarker.services.identity import Identity, IdentityProvider
from placemarker.services.note_store import NoteRecord, RemoteNoteStore, note_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLACEHOLDER_NOTE = ""


class NotesSyncService:
    """
    Remote per-user notes.

    fetch_note(place_id) -> Outcome[str]
        Success with the stored text, or with the placeholder when no note
        exists. On failure the outcome still carries the placeholder.

    save_note(place_id, text) -> Outcome[Note]
        Creates the record on first save, replaces its text afterwards.
    """

    def __init__(
        self,
        store: RemoteNoteStore,
        identity: IdentityProvider,
        placeholder: str = PLACEHOLDER_NOTE,
    ):
        self._store = store
        self._identity = identity
        self._placeholder = placeholder

    @property
    def placeholder(self) -> str:
        return self._placeholder

    async def fetch_note(self, place_id: str) -> Outcome[str]:
        if not place_id or not place_id.strip():
            return Outcome.failure(
                ValidationError("A place id is required", field="place_id"),
                value=self._placeholder,
            )

        async def read(identity: Identity) -> Optional[NoteRecord]:
            return await self._store.get(note_key(place_id, identity.uid), identity.id_token)

        try:
            record = await self._with_identity(read)
        except (IdentityUnavailableError, NoteSyncError) as e:
            logger.warning("Could not fetch note for %s: %s", place_id, e.message)
            return Outcome.failure(e, value=self._placeholder)

        if record is None:
            return Outcome.success(self._placeholder)
        return Outcome.success(record.note)

    async def save_note(self, place_id: str, text: str) -> Outcome[Note]:
        if not place_id or not place_id.strip():
            return Outcome.failure(ValidationError("A place id is required", field="place_id"))
        if not text or not text.strip():
            return Outcome.failure(
                ValidationError("Please enter a note before saving", field="text")
            )

        async def write(identity: Identity) -> Note:
            record = NoteRecord(place_id=place_id, uid=identity.uid, note=text)
            await self._store.put(note_key(place_id, identity.uid), record, identity.id_token)
            return Note(place_id=place_id, uid=identity.uid, text=text)

        try:
            note = await self._with_identity(write)
        except (IdentityUnavailableError, NoteSyncError) as e:
            logger.warning("Could not save note for %s: %s", place_id, e.message)
            return Outcome.failure(e)

        logger.info("Note saved for place %s (%d chars)", place_id, len(text))
        return Outcome.success(note)

    async def health_check(self) -> bool:
        return await self._store.health_check()

    async def _with_identity(self, operation: Callable[[Identity], Awaitable[T]]) -> T:
        identity = await self._identity.resolve()
        try:
            return await operation(identity)
        except NoteSyncError as e:
            if e.status_code != 401:
                raise
            logger.info("Notes request refused (401); refreshing identity and retrying once")
            self._identity.invalidate()
            identity = await self._identity.resolve()
            return await operation(identity)
