"""
PlaceMarker Core: Remote Note Store
===================================

What:  Keyed storage for note records in the `placeNotes` collection.
How:   Each record lives under the composite key built by note_key(place_id,
       uid). Reads and writes are single keyed requests; nothing ever scans
       the collection, so cost does not grow with the number of notes
       stored by other users.

Implementations:
    - FirebaseNoteStore: Firebase Realtime Database REST API over httpx
      (GET/PUT {database_url}/placeNotes/{key}.json?auth=<id token>)
    - InMemoryNoteStore: process-local dict with the same keying, used when
      no remote database is configured and in tests

Record shape (unchanged from the app's remote collection):
    {"placeId": "<place id>", "uid": "<identity uid>", "note": "<text>"}
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from placemarker.exceptions import NoteSyncError
from placemarker.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

# Characters the Realtime Database refuses in keys, plus "%" (the escape
# character itself) and ":" (the separator).
_KEY_UNSAFE = set(".#$[]/%:") | {chr(c) for c in range(32)} | {chr(127)}


def _escape_key_part(part: str) -> str:
    return "".join(f"%{ord(ch):02X}" if ch in _KEY_UNSAFE else ch for ch in part)


def note_key(place_id: str, uid: str) -> str:
    """
    Storage key for the note of `uid` on `place_id`: "<uid>:<place_id>".

    Both parts are escaped, so distinct pairs always map to distinct keys and
    every key is valid in the Realtime Database.
    """
    return f"{_escape_key_part(uid)}:{_escape_key_part(place_id)}"


class NoteRecord(BaseModel):
    place_id: str = Field(alias="placeId")
    uid: str
    note: str

    model_config = {"frozen": True, "populate_by_name": True}

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class RemoteNoteStore(ABC):
    """
    Contract for the keyed note collection.

    get() returns None when no record exists under the key.
    Both methods raise NoteSyncError on failure; NotesSyncService converts
    that into an Outcome.
    """

    @abstractmethod
    async def get(self, key: str, auth_token: str) -> Optional[NoteRecord]:
        ...

    @abstractmethod
    async def put(self, key: str, record: NoteRecord, auth_token: str) -> None:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...


class InMemoryNoteStore(RemoteNoteStore):
    def __init__(self):
        self.records: Dict[str, NoteRecord] = {}

    async def get(self, key: str, auth_token: str) -> Optional[NoteRecord]:
        return self.records.get(key)

    async def put(self, key: str, record: NoteRecord, auth_token: str) -> None:
        self.records[key] = record

    async def health_check(self) -> bool:
        return True


class FirebaseNoteStore(RemoteNoteStore):
    """
    Realtime Database REST client for one collection.

    A PUT on a key replaces the record there, so saving twice for the same
    (place, uid) updates in place and never creates a second record.
    Transport errors are retried per RetryPolicy; HTTP errors are not.
    """

    def __init__(
        self,
        database_url: str,
        http_client: httpx.AsyncClient,
        collection: str = "placeNotes",
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._base_url = database_url.rstrip("/")
        self._collection = collection
        self._http = http_client
        self._retry_policy = retry_policy or RetryPolicy.from_settings()

    def record_url(self, key: str) -> str:
        return f"{self._base_url}/{self._collection}/{quote(key, safe=':')}.json"

    async def get(self, key: str, auth_token: str) -> Optional[NoteRecord]:
        response = await self._request("GET", key, auth_token)
        try:
            payload = response.json()
            if payload is None:
                return None
            return NoteRecord.model_validate(payload)
        except ValueError as e:
            raise NoteSyncError(
                message="Stored note has an unexpected shape",
                context={"key": key, "error_type": type(e).__name__},
            ) from e

    async def put(self, key: str, record: NoteRecord, auth_token: str) -> None:
        await self._request("PUT", key, auth_token, json=record.to_payload())

    async def health_check(self) -> bool:
        try:
            await self._http.get(
                f"{self._base_url}/.json", params={"shallow": "true"}
            )
        except httpx.HTTPError as e:
            logger.warning("Notes backend unreachable: %s", str(e))
            return False
        # Any HTTP answer (even 401 from security rules) means it is reachable.
        return True

    async def _request(
        self, method: str, key: str, auth_token: str, **kwargs
    ) -> httpx.Response:
        url = self.record_url(key)
        try:
            async for attempt in self._retry_policy.retrying(logger):
                with attempt:
                    response = await self._http.request(
                        method, url, params={"auth": auth_token}, **kwargs
                    )
        except httpx.TransportError as e:
            logger.error("Notes %s %s failed after retries: %s", method, key, str(e))
            raise NoteSyncError(context={"key": key, "error_type": type(e).__name__}) from e

        if response.is_error:
            logger.warning(
                "Notes %s %s rejected with HTTP %d", method, key, response.status_code
            )
            raise NoteSyncError(
                message="The notes service rejected the request",
                status_code=response.status_code,
                context={"key": key},
            )
        return response
