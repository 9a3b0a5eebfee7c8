"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for dialect adapters
- SQLiteAdapter / PostgreSQLAdapter: dialect implementations
- Session helpers: engine, session factory and table creation

To add a new database dialect:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Register its DSN scheme in get_database_adapter()
"""

from linkstore.db.interface import DatabaseAdapter
from linkstore.db.sqlite_adapter import SQLiteAdapter, get_database_adapter
from linkstore.db.session import build_engine, build_session_maker, create_tables, session_scope

__all__ = [
    "DatabaseAdapter",
    "SQLiteAdapter",
    "get_database_adapter",
    "build_engine",
    "build_session_maker",
    "create_tables",
    "session_scope",
]
