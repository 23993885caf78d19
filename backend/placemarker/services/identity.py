"""
PlaceMarker Core: Anonymous Identity
====================================

What:  Resolves the per-device anonymous identity that scopes private notes.
How:   FirebaseAnonymousIdentity signs up anonymously through the Identity
       Toolkit REST endpoint, refreshes expired ID tokens through the Secure
       Token endpoint and remembers uid + refresh token in the local durable
       store (table `device_identity`).
When:  Lazily, on the first note access. resolve() is guarded by an
       asyncio.Lock so concurrent note calls share one sign-up.

Identity lifetime:
    The uid lives as long as the local store. Reinstalling the app (or
    deleting the database) issues a new uid, and notes written under the old
    one become unreachable. A stored refresh token rejected by the provider
    also leads to a new uid; this is logged as a warning.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import httpx
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from placemarker.database import Base, session_factory_for
from placemarker.exceptions import IdentityUnavailableError
from placemarker.models.device_identity import DEVICE_ROW_ID, DeviceIdentity
from placemarker.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

# Tokens are treated as expired this many seconds early.
TOKEN_EXPIRY_SKEW_S = 60


class Identity(BaseModel):
    """An issued anonymous identity and its current credentials."""

    uid: str
    id_token: str
    refresh_token: str
    expires_at: float

    model_config = {"frozen": True}

    def is_fresh(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now < self.expires_at - TOKEN_EXPIRY_SKEW_S


class IdentityProvider(ABC):
    """
    Contract for anything that issues the identity used by NotesSyncService.

    resolve() returns a usable identity or raises IdentityUnavailableError.
    invalidate() marks the cached token as stale (e.g. after a 401).
    """

    @abstractmethod
    async def resolve(self) -> Identity:
        ...

    @abstractmethod
    def invalidate(self) -> None:
        ...


class IdentityRepository:
    """Reads and writes the single `device_identity` row."""

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_factory = session_factory_for(engine)

    async def ensure_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(
                Base.metadata.create_all, tables=[DeviceIdentity.__table__]
            )

    async def load(self) -> Optional[Tuple[str, str]]:
        """(uid, refresh_token) of the stored identity, if any."""
        await self.ensure_schema()
        async with self._session_factory() as session:
            result = await session.execute(
                select(DeviceIdentity).where(DeviceIdentity.id == DEVICE_ROW_ID)
            )
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return row.uid, row.refresh_token

    async def save(self, uid: str, refresh_token: str) -> None:
        await self.ensure_schema()
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(DeviceIdentity, DEVICE_ROW_ID)
                if row is None:
                    session.add(
                        DeviceIdentity(id=DEVICE_ROW_ID, uid=uid, refresh_token=refresh_token)
                    )
                else:
                    row.uid = uid
                    row.refresh_token = refresh_token


class FirebaseAnonymousIdentity(IdentityProvider):
    """
    Anonymous Firebase Authentication over REST.

    Resolution order:
        1. cached identity with a fresh token
        2. refresh with the cached or stored refresh token
        3. anonymous sign-up (new uid)
    """

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        repository: Optional[IdentityRepository] = None,
        identity_toolkit_url: str = "https://identitytoolkit.googleapis.com/v1",
        secure_token_url: str = "https://securetoken.googleapis.com/v1",
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._api_key = api_key
        self._http = http_client
        self._repository = repository
        self._sign_up_url = f"{identity_toolkit_url.rstrip('/')}/accounts:signUp"
        self._token_url = f"{secure_token_url.rstrip('/')}/token"
        self._retry_policy = retry_policy or RetryPolicy.from_settings()
        self._current: Optional[Identity] = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    def invalidate(self) -> None:
        if self._current is not None:
            self._current = self._current.model_copy(update={"expires_at": 0.0})

    async def resolve(self) -> Identity:
        async with self._lock:
            if self._current is not None and self._current.is_fresh():
                return self._current

            if not self._api_key:
                raise IdentityUnavailableError(
                    message="Anonymous sign-in is not configured",
                    context={"reason": "missing_api_key"},
                )

            try:
                identity = await self._obtain()
            except (httpx.HTTPError, KeyError, ValueError) as e:
                # KeyError/ValueError: malformed provider payload
                logger.warning("Identity resolution failed: %s", str(e))
                raise IdentityUnavailableError(
                    context={"error_type": type(e).__name__}
                ) from e

            self._current = identity
            return identity

    async def _obtain(self) -> Identity:
        if self._current is not None:
            known: Optional[Tuple[str, str]] = (
                self._current.uid,
                self._current.refresh_token,
            )
        else:
            known = await self._load_stored()

        if known is not None:
            uid, refresh_token = known
            identity = await self._refresh(refresh_token)
            if identity is not None:
                if identity.uid != uid or identity.refresh_token != refresh_token:
                    await self._store(identity)
                return identity
            logger.warning(
                "Stored refresh token for uid %s was rejected; issuing a new anonymous "
                "identity. Notes saved under the old uid are no longer reachable.",
                uid,
            )

        identity = await self._sign_up()
        await self._store(identity)
        logger.info("Anonymous identity issued: uid=%s", identity.uid)
        return identity

    async def _sign_up(self) -> Identity:
        response = await self._post(
            self._sign_up_url, json={"returnSecureToken": True}
        )
        if response.is_error:
            raise IdentityUnavailableError(
                message="Anonymous sign-in was refused",
                context={"status_code": response.status_code},
            )
        body = response.json()
        return Identity(
            uid=body["localId"],
            id_token=body["idToken"],
            refresh_token=body["refreshToken"],
            expires_at=time.time() + float(body.get("expiresIn", 3600)),
        )

    async def _refresh(self, refresh_token: str) -> Optional[Identity]:
        """New credentials for `refresh_token`, or None if the provider rejects it."""
        response = await self._post(
            self._token_url,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        if response.status_code in (400, 401, 403):
            return None
        if response.is_error:
            raise IdentityUnavailableError(
                message="Token refresh failed",
                context={"status_code": response.status_code},
            )
        body = response.json()
        return Identity(
            uid=body["user_id"],
            id_token=body["id_token"],
            refresh_token=body.get("refresh_token", refresh_token),
            expires_at=time.time() + float(body.get("expires_in", 3600)),
        )

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        async for attempt in self._retry_policy.retrying(logger):
            with attempt:
                return await self._http.post(url, params={"key": self._api_key}, **kwargs)
        raise AssertionError("unreachable: tenacity reraises the last error")

    async def _load_stored(self) -> Optional[Tuple[str, str]]:
        if self._repository is None:
            return None
        try:
            return await self._repository.load()
        except SQLAlchemyError as e:
            logger.error("Could not read stored identity: %s", str(e))
            return None

    async def _store(self, identity: Identity) -> None:
        if self._repository is None:
            return
        try:
            await self._repository.save(identity.uid, identity.refresh_token)
        except SQLAlchemyError as e:
            # The identity still works for this process; only restart survival is lost.
            logger.error("Could not persist identity %s: %s", identity.uid, str(e))
