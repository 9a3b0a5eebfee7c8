"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite through the
aiosqlite driver. It also hosts the adapter factory.

SQLite is used for:
- Local development
- Tests (a temporary file per test)
- Single-instance deployments
"""

from typing import Any

from sqlalchemy import Table
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool
from sqlalchemy.sql.dml import Insert

from linkstore.db.interface import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    SQLite handles one writer at a time (file locking), so no pool is kept.
    """

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create SQLite async engine with appropriate configuration.

        Args:
            database_url: SQLite connection string (sqlite:// or sqlite+aiosqlite://)
            **kwargs: Additional engine options (merged with SQLite defaults)

        Returns:
            Configured AsyncEngine for SQLite
        """
        return create_async_engine(
            self.normalize_url(database_url),
            **self.build_engine_options(**kwargs)
        )

    def normalize_url(self, database_url: str) -> str:
        if database_url.startswith("sqlite+aiosqlite://"):
            return database_url
        if database_url.startswith("sqlite://"):
            return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return database_url

    def get_pool_class(self) -> type[NullPool]:
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False
        }

    def insert_ignore(self, table: Table) -> Insert:
        return sqlite_insert(table).on_conflict_do_nothing()

    def get_dialect_name(self) -> str:
        return "sqlite"


def get_database_adapter(database_url: str = "") -> DatabaseAdapter:
    """
    Factory function to get the database adapter for a DSN.

    Returns SQLiteAdapter for sqlite DSNs (and when no DSN is given),
    PostgreSQLAdapter for postgres DSNs.

    Args:
        database_url: DSN from configuration

    Returns:
        DatabaseAdapter instance

    Raises:
        ValueError: If the DSN scheme is not supported
    """
    if not database_url or database_url.startswith("sqlite"):
        return SQLiteAdapter()

    if database_url.startswith(("postgres://", "postgresql://", "postgresql+asyncpg://")):
        from linkstore.db.postgres_adapter import PostgreSQLAdapter
        return PostgreSQLAdapter()

    raise ValueError(f"Unsupported database DSN scheme: {database_url.split(':', 1)[0]}")
