"""
PostgreSQL Database Adapter

Production adapter using the asyncpg driver with a shared connection pool.
The pool is safe for concurrent use by many tasks.
"""

from typing import Any, Optional

from sqlalchemy import Table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import Pool
from sqlalchemy.sql.dml import Insert

from linkstore.db.interface import DatabaseAdapter


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL database adapter implementation."""

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        return create_async_engine(
            self.normalize_url(database_url),
            **self.build_engine_options(**kwargs)
        )

    def normalize_url(self, database_url: str) -> str:
        """
        Convert libpq-style DSNs to the asyncpg dialect.

        postgres://... and postgresql://... -> postgresql+asyncpg://...
        """
        if database_url.startswith("postgresql+asyncpg://"):
            return database_url
        if database_url.startswith("postgres://"):
            return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
        if database_url.startswith("postgresql://"):
            return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return database_url

    def get_pool_class(self) -> Optional[type[Pool]]:
        # AsyncAdaptedQueuePool (the async engine default)
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {}

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        }

    def insert_ignore(self, table: Table) -> Insert:
        return pg_insert(table).on_conflict_do_nothing()

    def get_dialect_name(self) -> str:
        return "postgresql"
