"""SQL-backed content store (SQLAlchemy async, one key/value table)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from vaultsync.database import create_engine
from vaultsync.exceptions import StoreError
from vaultsync.models.base import Base
from vaultsync.models.cache import CacheEntry
from vaultsync.services.datetime_service import format_iso, now_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class SqlStore:
    """Stores each key as a row in ``cache_entries``.

    Every ``set`` is its own transaction, so a manifest replacement commits
    as one unit.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str, *, echo: bool = False) -> SqlStore:
        engine, session_factory = create_engine(database_url, echo=echo)
        return cls(engine, session_factory)

    async def init(self) -> None:
        """Create the cache table if it does not exist."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to create cache schema: {exc}") from exc

    async def get(self, key: str) -> bytes | None:
        try:
            async with self._session_factory() as session:
                entry = await session.get(CacheEntry, key)
                return None if entry is None else entry.value
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read {key}: {exc}") from exc

    async def set(self, key: str, value: bytes) -> None:
        try:
            async with self._session_factory() as session:
                await session.merge(
                    CacheEntry(key=key, value=bytes(value), updated_at=format_iso(now_utc()))
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to write {key}: {exc}") from exc

    async def remove(self, key: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(CacheEntry).where(CacheEntry.key == key))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to delete {key}: {exc}") from exc
        return bool(result.rowcount)

    async def close(self) -> None:
        try:
            await self._engine.dispose()
        except SQLAlchemyError as exc:
            logger.error("Error during engine disposal: %s", exc, exc_info=True)
