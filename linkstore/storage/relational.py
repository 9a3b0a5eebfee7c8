"""
Relational Backend

SQLModel/SQLAlchemy async implementation of both capabilities. The dialect
(SQLite through aiosqlite, PostgreSQL through asyncpg) is picked from the DSN
by get_database_adapter().

Design Decisions:
- Tables are created on init (create_all), no migration step
- save_batch is one multi-row INSERT ... ON CONFLICT DO NOTHING per call,
  with RETURNING so callers learn which rows were skipped
- soft_delete_batch is one UPDATE ... WHERE short_url IN (...) AND user_id = ?
- IntegrityError becomes ConflictError, every other SQLAlchemyError
  becomes StorageError
"""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from linkstore.core.exceptions import ConflictError, OriginalURLNotFoundError, StorageError
from linkstore.db.interface import DatabaseAdapter
from linkstore.db.models import OwnerRow, URLRow
from linkstore.db.session import build_engine, build_session_maker, create_tables, session_scope
from linkstore.db.sqlite_adapter import get_database_adapter
from linkstore.storage.interface import OwnershipStore, URLStore
from linkstore.storage.records import URLRecord

logger = logging.getLogger(__name__)


def _to_record(row: URLRow) -> URLRecord:
    return URLRecord(
        id=row.id or 0,
        short_key=row.short_url,
        original_url=row.url,
        owner_id=row.user_id,
        is_deleted=row.is_deleted,
    )


class RelationalBackend(URLStore, OwnershipStore):
    """SQL store with owner tracking and soft delete."""

    name = "relational"

    def __init__(self, dsn: str = "", echo: bool = False):
        self.dsn = dsn
        self.echo = echo
        self.adapter: Optional[DatabaseAdapter] = None
        self.engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker] = None

    async def init(self, connection_info: Any = None) -> None:
        """
        Open the engine for the DSN and create missing tables.

        Args:
            connection_info: DSN overriding the one given to the constructor

        Raises:
            StorageError: If the DSN is unsupported or the database is unreachable
        """
        if connection_info:
            self.dsn = connection_info
        if not self.dsn:
            raise StorageError("relational backend requires a DSN")

        try:
            self.adapter = get_database_adapter(self.dsn)
        except ValueError as e:
            raise StorageError(str(e), original_error=e)

        self.engine = build_engine(self.adapter, self.dsn, echo=self.echo)
        self._session_maker = build_session_maker(self.engine)

        try:
            await create_tables(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Error creating tables: {e}", exc_info=True)
            await self.engine.dispose()
            raise StorageError(f"cannot initialize database: {e}", original_error=e)

        logger.info(f"Relational backend initialized ({self.adapter.get_dialect_name()})")

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self._session_maker = None
            logger.info("Relational backend closed")

    def _require_ready(self) -> DatabaseAdapter:
        if self.adapter is None or self._session_maker is None:
            raise StorageError("relational backend is not initialized")
        return self.adapter

    def _scope(self):
        self._require_ready()
        return session_scope(self._session_maker)

    async def get_by_short_key(self, short_key: str) -> Optional[URLRecord]:
        statement = select(URLRow).where(URLRow.short_url == short_key)
        try:
            async with self._scope() as session:
                result = await session.execute(statement)
                row = result.scalars().first()
        except SQLAlchemyError as e:
            raise StorageError(f"lookup of '{short_key}' failed: {e}", original_error=e)

        return _to_record(row) if row is not None else None

    async def get_by_original_url(self, original_url: str) -> str:
        statement = (
            select(URLRow.short_url)
            .where(URLRow.url == original_url, URLRow.is_deleted == False)  # noqa: E712
            .order_by(URLRow.id)
            .limit(1)
        )
        try:
            async with self._scope() as session:
                result = await session.execute(statement)
                short_key = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"lookup of '{original_url}' failed: {e}", original_error=e)

        if short_key is None:
            raise OriginalURLNotFoundError(original_url)
        return short_key

    async def save(self, short_key: str, original_url: str, owner_id: str = "") -> None:
        try:
            async with self._scope() as session:
                session.add(URLRow(url=original_url, short_url=short_key, user_id=owner_id))
        except IntegrityError as e:
            raise ConflictError(
                f"short key '{short_key}' or active URL '{original_url}' already exists",
                original_error=e
            )
        except SQLAlchemyError as e:
            logger.error(f"Error saving '{short_key}': {e}", exc_info=True)
            raise StorageError(f"save of '{short_key}' failed: {e}", original_error=e)

    async def save_batch(self, records: Sequence[URLRecord]) -> list[str]:
        adapter = self._require_ready()
        if not records:
            return []

        table = URLRow.__table__
        values = [
            {
                "url": record.original_url,
                "short_url": record.short_key,
                "user_id": record.owner_id,
                "is_deleted": False,
            }
            for record in records
        ]
        statement = adapter.insert_ignore(table).values(values).returning(table.c.short_url)

        try:
            async with self._scope() as session:
                result = await session.execute(statement)
                inserted = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error saving batch of {len(records)}: {e}", exc_info=True)
            raise StorageError(f"batch save failed: {e}", original_error=e)

        if len(inserted) < len(records):
            logger.debug(f"Batch skipped {len(records) - len(inserted)} conflicting rows")
        return inserted

    async def load_all(self) -> list[URLRecord]:
        statement = select(URLRow).order_by(URLRow.id)
        try:
            async with self._scope() as session:
                result = await session.execute(statement)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"load failed: {e}", original_error=e)

        return [_to_record(row) for row in rows]

    async def count(self) -> int:
        return await self._count(URLRow)

    async def ping(self) -> bool:
        try:
            async with self._scope() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, StorageError) as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def is_owner_registered(self, owner_id: str) -> bool:
        statement = select(OwnerRow.id).where(OwnerRow.user_id == owner_id).limit(1)
        try:
            async with self._scope() as session:
                result = await session.execute(statement)
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            raise StorageError(f"owner lookup failed: {e}", original_error=e)

    async def register_owner(self, owner_id: str) -> None:
        try:
            async with self._scope() as session:
                session.add(OwnerRow(user_id=owner_id))
        except IntegrityError as e:
            raise ConflictError(f"owner '{owner_id}' already registered", original_error=e)
        except SQLAlchemyError as e:
            raise StorageError(f"owner registration failed: {e}", original_error=e)

    async def list_by_owner(self, owner_id: str) -> list[URLRecord]:
        statement = (
            select(URLRow)
            .where(URLRow.user_id == owner_id, URLRow.is_deleted == False)  # noqa: E712
            .order_by(URLRow.id)
        )
        try:
            async with self._scope() as session:
                result = await session.execute(statement)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"owner listing failed: {e}", original_error=e)

        return [_to_record(row) for row in rows]

    async def soft_delete_batch(self, owner_id: str, short_keys: Sequence[str]) -> None:
        if not short_keys:
            return

        table = URLRow.__table__
        statement = (
            update(table)
            .where(table.c.short_url.in_(list(short_keys)), table.c.user_id == owner_id)
            .values(is_deleted=True)
        )
        try:
            async with self._scope() as session:
                result = await session.execute(statement)
        except SQLAlchemyError as e:
            raise StorageError(f"soft delete failed: {e}", original_error=e)

        logger.debug(f"Soft-deleted {result.rowcount} of {len(short_keys)} keys for {owner_id}")

    async def count_owners(self) -> int:
        return await self._count(OwnerRow)

    async def _count(self, model) -> int:
        statement = select(func.count()).select_from(model)
        try:
            async with self._scope() as session:
                result = await session.execute(statement)
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise StorageError(f"count failed: {e}", original_error=e)
