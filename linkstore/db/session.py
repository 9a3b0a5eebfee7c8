"""
Database Session Management

Builds the async engine and session factory for the relational backend.
Engines are created per backend instance (from the DSN passed to init),
not at import time, so several stores can coexist in one process.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from linkstore.db.interface import DatabaseAdapter


def build_engine(adapter: DatabaseAdapter, database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the engine for a DSN through its dialect adapter."""
    return adapter.create_engine(database_url, echo=echo)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """
    Create the async session factory bound to an engine.

    expire_on_commit=False keeps loaded rows readable after commit.
    """
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create urls and users_cookie if they do not exist yet."""
    # Import models so they register with SQLModel.metadata
    from linkstore.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def session_scope(session_maker: async_sessionmaker) -> AsyncIterator[SQLModelAsyncSession]:
    """
    Provide a session that commits on success and rolls back on exception.

    Usage:
        async with session_scope(self._session_maker) as session:
            await session.execute(statement)
    """
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
