"""
Database Abstraction Interface

This module defines the dialect abstraction used by the relational backend so
it can run on SQLite (development, tests) or PostgreSQL (production) without
changing the backend code.

Each adapter owns:
- engine construction (pooling, connect args)
- DSN normalisation to the async driver
- the dialect-specific "insert, ignore on conflict" statement
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import Table
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import Pool
from sqlalchemy.sql.dml import Insert


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Implement all abstract methods
    3. Register its DSN schemes in get_database_adapter()
    """

    @abstractmethod
    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.

        Args:
            database_url: Connection string for the database
            **kwargs: Additional engine configuration options

        Returns:
            Configured AsyncEngine instance
        """
        pass

    @abstractmethod
    def normalize_url(self, database_url: str) -> str:
        """
        Rewrite a DSN so that it names this adapter's async driver.

        Args:
            database_url: DSN as supplied by configuration

        Returns:
            DSN usable by create_async_engine
        """
        pass

    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """
        Get the connection pool class for this database type.

        Returns:
            Pool class or None to use the driver default
        """
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Get connection arguments specific to this database type."""
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Get additional engine configuration specific to this database type."""
        pass

    @abstractmethod
    def insert_ignore(self, table: Table) -> Insert:
        """
        Build an INSERT that silently skips rows violating a unique constraint.

        Args:
            table: Target table

        Returns:
            Insert statement with an ON CONFLICT DO NOTHING clause
        """
        pass

    @abstractmethod
    def get_dialect_name(self) -> str:
        """
        Get the SQLAlchemy dialect name for this database.

        Returns:
            Dialect name (e.g., 'sqlite', 'postgresql')
        """
        pass

    def build_engine_options(self, **kwargs) -> dict[str, Any]:
        """
        Collect create_async_engine keyword arguments for this adapter.

        poolclass is only included when the adapter names one, so the
        async engine default pool applies otherwise.

        Args:
            **kwargs: Overrides merged over get_engine_kwargs()

        Returns:
            Keyword arguments for create_async_engine
        """
        options = self.get_engine_kwargs()
        options.update(kwargs)
        options["connect_args"] = self.get_connect_args()

        pool_class = self.get_pool_class()
        if pool_class is not None:
            options["poolclass"] = pool_class
        return options
