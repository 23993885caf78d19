"""
PlaceMarker Core: Persistence Gateway (local durable store)
===========================================================

What:  Durable mirror of SavedPlaces in the `marked_places` table.
How:   Async SQLAlchemy sessions, one short transaction per call. Every call
       returns an Outcome; failures are logged and returned as
       Outcome.failure(StorageError), never raised.
Who:   Owned and driven by SpatialStore (hydrate, add, remove, clear).

Duplicate guard:
    insert() issues INSERT ... ON CONFLICT (place_id) DO NOTHING against the
    UNIQUE constraint on place_id. The storage engine rejects a duplicate even
    when two writers race; there is no read-then-write check in Python.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from placemarker.database import Base, engine as default_engine, session_factory_for
from placemarker.domain import Place
from placemarker.exceptions import StorageError
from placemarker.models.marked_place import MarkedPlace
from placemarker.results import Outcome

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO NOTHING support.
_INSERT_BY_DIALECT = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class PersistenceGateway:
    """
    Sole owner of the `marked_places` table.

    Operations:
        - ensure_schema():        create-if-absent, safe on every startup
        - insert(place):          value True if a row was written, False on duplicate
        - fetch_all():            every row as a Place, in mp_id order
        - delete_by_place_id(id): value True if a row was removed
        - clear():                value is the number of rows removed
    """

    def __init__(self, engine: Optional[AsyncEngine] = None):
        self._engine = engine or default_engine
        self._session_factory = session_factory_for(self._engine)

        insert_factory = _INSERT_BY_DIALECT.get(self._engine.dialect.name)
        if insert_factory is None:
            raise ValueError(
                f"Unsupported dialect '{self._engine.dialect.name}' for marked places; "
                f"expected one of {sorted(_INSERT_BY_DIALECT)}"
            )
        self._insert = insert_factory

    async def ensure_schema(self) -> Outcome[None]:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(
                    Base.metadata.create_all, tables=[MarkedPlace.__table__]
                )
        except SQLAlchemyError as e:
            return self._failure("ensure_schema", e)
        logger.debug("marked_places schema ensured")
        return Outcome.success()

    async def insert(self, place: Place) -> Outcome[bool]:
        stmt = (
            self._insert(MarkedPlace.__table__)
            .values(**MarkedPlace.row_values(place))
            .on_conflict_do_nothing(index_elements=["place_id"])
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except SQLAlchemyError as e:
            return self._failure("insert", e, place_id=place.id)

        inserted = result.rowcount == 1
        if inserted:
            logger.info("Marked place stored: %s", place.id)
        else:
            logger.info("Marked place %s already stored; insert ignored", place.id)
        return Outcome.success(inserted)

    async def fetch_all(self) -> Outcome[List[Place]]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(MarkedPlace).order_by(MarkedPlace.mp_id)
                )
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            return self._failure("fetch_all", e)
        return Outcome.success([row.to_place() for row in rows])

    async def delete_by_place_id(self, place_id: str) -> Outcome[bool]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(MarkedPlace).where(MarkedPlace.place_id == place_id)
                    )
        except SQLAlchemyError as e:
            return self._failure("delete", e, place_id=place_id)

        removed = result.rowcount > 0
        if removed:
            logger.info("Marked place removed: %s", place_id)
        return Outcome.success(removed)

    async def clear(self) -> Outcome[int]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(delete(MarkedPlace))
        except SQLAlchemyError as e:
            return self._failure("clear", e)
        logger.info("Cleared %d marked places", result.rowcount)
        return Outcome.success(result.rowcount)

    def _failure(self, operation: str, exc: Exception, **context) -> Outcome:
        logger.error(
            "Local store %s failed: %s", operation, str(exc), exc_info=True
        )
        return Outcome.failure(
            StorageError(
                operation=operation,
                context={**context, "error_type": type(exc).__name__},
            )
        )


persistence_gateway = PersistenceGateway()
