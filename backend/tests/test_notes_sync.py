"""
PlaceMarker Tests: Notes Sync Service
=====================================

What we test:
    ✅ Unknown note → placeholder; saved note → its text
    ✅ Two saves leave exactly one record holding the last text
    ✅ Notes are private to their uid
    ✅ Blank text / blank place id are validation failures
    ✅ Identity failure → failed outcome carrying the placeholder
    ✅ A 401 refreshes the identity and retries once
"""

import pytest

from placemarker.dependencies import LocalIdentity
from placemarker.exceptions import (
    IdentityUnavailableError,
    NoteSyncError,
    ValidationError,
)
from placemarker.services.identity import Identity, IdentityProvider
from placemarker.services.note_store import InMemoryNoteStore, NoteRecord, note_key
from placemarker.services.notes_sync import NotesSyncService


class BrokenIdentity(IdentityProvider):
    async def resolve(self):
        raise IdentityUnavailableError()

    def invalidate(self):
        pass


class RotatingIdentity(IdentityProvider):
    """Same uid; a new token after every invalidate()."""

    def __init__(self):
        self.generation = 0

    async def resolve(self):
        return Identity(
            uid="uid-1",
            id_token=f"token-{self.generation}",
            refresh_token="r",
            expires_at=float("inf"),
        )

    def invalidate(self):
        self.generation += 1


class TokenCheckingStore(InMemoryNoteStore):
    """Rejects every token except the current one with a 401."""

    def __init__(self, valid_token):
        super().__init__()
        self.valid_token = valid_token
        self.calls = 0

    async def put(self, key, record, auth_token):
        self.calls += 1
        if auth_token != self.valid_token:
            raise NoteSyncError(status_code=401)
        await super().put(key, record, auth_token)


class TestFetchAndSave:
    def setup_method(self):
        self.store = InMemoryNoteStore()
        self.service = NotesSyncService(self.store, LocalIdentity(uid="uid-1"))

    @pytest.mark.asyncio
    async def test_missing_note_is_placeholder(self):
        outcome = await self.service.fetch_note("p1")
        assert outcome.ok
        assert outcome.value == ""

    @pytest.mark.asyncio
    async def test_save_then_fetch(self):
        saved = await self.service.save_note("p1", "Great patio")

        assert saved.ok
        assert saved.value.uid == "uid-1"
        assert (await self.service.fetch_note("p1")).value == "Great patio"

    @pytest.mark.asyncio
    async def test_second_save_updates_in_place(self):
        await self.service.save_note("p1", "first")
        await self.service.save_note("p1", "second")

        assert len(self.store.records) == 1
        assert self.store.records[note_key("p1", "uid-1")] == NoteRecord(
            place_id="p1", uid="uid-1", note="second"
        )
        assert (await self.service.fetch_note("p1")).value == "second"

    @pytest.mark.asyncio
    async def test_notes_are_private_per_uid(self):
        await self.service.save_note("p1", "mine")
        other = NotesSyncService(self.store, LocalIdentity(uid="uid-2"))

        assert (await other.fetch_note("p1")).value == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_text_is_refused(self, text):
        outcome = await self.service.save_note("p1", text)

        assert not outcome.ok
        assert isinstance(outcome.error, ValidationError)
        assert outcome.error.field == "text"
        assert self.store.records == {}

    @pytest.mark.asyncio
    async def test_blank_place_id(self):
        fetched = await self.service.fetch_note("  ")
        saved = await self.service.save_note("", "text")

        assert not fetched.ok and fetched.value == ""
        assert isinstance(saved.error, ValidationError)


class TestFailures:
    @pytest.mark.asyncio
    async def test_identity_failure_returns_placeholder(self):
        service = NotesSyncService(InMemoryNoteStore(), BrokenIdentity(), placeholder="(no note)")

        outcome = await service.fetch_note("p1")

        assert not outcome.ok
        assert outcome.value == "(no note)"
        assert isinstance(outcome.error, IdentityUnavailableError)

    @pytest.mark.asyncio
    async def test_identity_failure_aborts_save(self):
        store = InMemoryNoteStore()
        outcome = await NotesSyncService(store, BrokenIdentity()).save_note("p1", "x")

        assert isinstance(outcome.error, IdentityUnavailableError)
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_unauthorized_retries_once_with_fresh_token(self):
        store = TokenCheckingStore(valid_token="token-1")
        service = NotesSyncService(store, RotatingIdentity())

        outcome = await service.save_note("p1", "hello")

        assert outcome.ok
        assert store.calls == 2

    @pytest.mark.asyncio
    async def test_unauthorized_twice_gives_up(self):
        store = TokenCheckingStore(valid_token="never")
        service = NotesSyncService(store, RotatingIdentity())

        outcome = await service.save_note("p1", "hello")

        assert not outcome.ok
        assert outcome.error.status_code == 401
        assert store.calls == 2
