"""
PlaceMarker Tests: Anonymous Identity
=====================================

Fakes the Identity Toolkit and Secure Token endpoints with
httpx.MockTransport; the identity row lives in the per-test SQLite file.

What we test:
    ✅ First resolve signs up once and persists uid + refresh token
    ✅ Concurrent resolves share one sign-up
    ✅ A stored identity is refreshed, not replaced, after a restart
    ✅ A rejected refresh token falls back to a new sign-up
    ✅ Missing API key / refused sign-up → IdentityUnavailableError
    ✅ invalidate() forces a token refresh
"""

import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import mock_http_client
from placemarker.exceptions import IdentityUnavailableError
from placemarker.services.identity import FirebaseAnonymousIdentity, IdentityRepository
from placemarker.services.retry import NO_RETRY


class FakeAuthBackend:
    """Minimal stand-in for the Firebase Auth REST endpoints."""

    def __init__(self):
        self.sign_ups = 0
        self.refreshes = 0
        self.reject_refresh = False
        self.refuse_sign_up = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        assert request.url.params["key"] == "web-key"
        if request.url.path.endswith("/accounts:signUp"):
            if self.refuse_sign_up:
                return httpx.Response(403, json={"error": {"message": "ADMIN_ONLY_OPERATION"}})
            assert json.loads(request.content) == {"returnSecureToken": True}
            self.sign_ups += 1
            return httpx.Response(
                200,
                json={
                    "localId": f"uid-{self.sign_ups}",
                    "idToken": f"id-token-{self.sign_ups}",
                    "refreshToken": f"refresh-{self.sign_ups}",
                    "expiresIn": "3600",
                },
            )
        if request.url.path.endswith("/token"):
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == ["refresh_token"]
            if self.reject_refresh:
                return httpx.Response(400, json={"error": {"message": "INVALID_REFRESH_TOKEN"}})
            self.refreshes += 1
            token = form["refresh_token"][0]
            uid = "uid-" + token.split("-")[-1]
            return httpx.Response(
                200,
                json={
                    "user_id": uid,
                    "id_token": f"refreshed-id-token-{self.refreshes}",
                    "refresh_token": token,
                    "expires_in": "3600",
                },
            )
        return httpx.Response(404)


def make_identity(backend, engine=None, api_key="web-key"):
    return FirebaseAnonymousIdentity(
        api_key=api_key,
        http_client=mock_http_client(backend),
        repository=IdentityRepository(engine) if engine is not None else None,
        retry_policy=NO_RETRY,
    )


class TestFirebaseAnonymousIdentity:
    @pytest.mark.asyncio
    async def test_first_resolve_signs_up_and_persists(self, engine):
        backend = FakeAuthBackend()
        provider = make_identity(backend, engine)

        identity = await provider.resolve()

        assert identity.uid == "uid-1"
        assert identity.id_token == "id-token-1"
        assert identity.is_fresh()
        assert backend.sign_ups == 1
        assert await IdentityRepository(engine).load() == ("uid-1", "refresh-1")

    @pytest.mark.asyncio
    async def test_cached_identity_is_reused(self, engine):
        backend = FakeAuthBackend()
        provider = make_identity(backend, engine)

        first = await provider.resolve()
        second = await provider.resolve()

        assert first == second
        assert backend.sign_ups == 1
        assert backend.refreshes == 0

    @pytest.mark.asyncio
    async def test_concurrent_resolves_share_one_sign_up(self):
        backend = FakeAuthBackend()
        provider = make_identity(backend)

        identities = await asyncio.gather(*(provider.resolve() for _ in range(5)))

        assert {i.uid for i in identities} == {"uid-1"}
        assert backend.sign_ups == 1

    @pytest.mark.asyncio
    async def test_restart_refreshes_stored_identity(self, engine):
        """A new process with the same local store keeps the same uid."""
        backend = FakeAuthBackend()
        await make_identity(backend, engine).resolve()

        restarted = make_identity(backend, engine)
        identity = await restarted.resolve()

        assert identity.uid == "uid-1"
        assert backend.sign_ups == 1
        assert backend.refreshes == 1

    @pytest.mark.asyncio
    async def test_rejected_refresh_signs_up_again(self, engine):
        backend = FakeAuthBackend()
        await make_identity(backend, engine).resolve()
        backend.reject_refresh = True

        identity = await make_identity(backend, engine).resolve()

        assert identity.uid == "uid-2"
        assert await IdentityRepository(engine).load() == ("uid-2", "refresh-2")

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self):
        backend = FakeAuthBackend()
        provider = make_identity(backend)
        await provider.resolve()

        provider.invalidate()
        identity = await provider.resolve()

        assert identity.uid == "uid-1"
        assert identity.id_token == "refreshed-id-token-1"
        assert backend.refreshes == 1

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        provider = make_identity(FakeAuthBackend(), api_key="")

        with pytest.raises(IdentityUnavailableError) as exc_info:
            await provider.resolve()

        assert exc_info.value.context["reason"] == "missing_api_key"

    @pytest.mark.asyncio
    async def test_refused_sign_up(self):
        backend = FakeAuthBackend()
        backend.refuse_sign_up = True

        with pytest.raises(IdentityUnavailableError):
            await make_identity(backend).resolve()

    @pytest.mark.asyncio
    async def test_network_failure_is_identity_unavailable(self):
        def unreachable(request):
            raise httpx.ConnectError("no route to host", request=request)

        with pytest.raises(IdentityUnavailableError) as exc_info:
            await make_identity(unreachable).resolve()

        assert exc_info.value.context["error_type"] == "ConnectError"
