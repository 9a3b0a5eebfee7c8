"""
Database Models for the Relational Backend

This module defines the SQLModel tables:
- URLRow: mapping between short keys and original URLs (table ``urls``)
- OwnerRow: registered owner identities (table ``users_cookie``)

Design Decisions:
- Composite unique (url, short_url) so batch upserts can ignore re-sent pairs
- short_url is unique on its own: a key never points at two URLs
- Partial unique index on url among active rows: a URL has at most one
  live key, even when two writers race past the lookup
- Records are never hard-deleted; is_deleted marks them inactive
- user_id is indexed because listing and soft-delete are scoped by owner
"""

from typing import Optional

from sqlalchemy import Boolean, Column, Index, String, UniqueConstraint, false, text
from sqlmodel import Field, SQLModel


class URLRow(SQLModel, table=True):
    """
    Stored URL mapping.

    Fields:
    - id: Auto-incrementing primary key (insertion sequence)
    - url: The original URL
    - short_url: The short key
    - user_id: Owner identity, empty when anonymous
    - is_deleted: Soft-delete flag
    """
    __tablename__ = "urls"
    __table_args__ = (
        UniqueConstraint("url", "short_url", name="uq_urls_url_short_url"),
        Index(
            "uq_urls_active_url",
            "url",
            unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    url: str = Field(sa_column=Column(String(2048), nullable=False, index=True))
    short_url: str = Field(
        sa_column=Column(String(20), nullable=False, unique=True, index=True)
    )
    user_id: str = Field(
        default="",
        sa_column=Column(String(100), nullable=False, default="", index=True)
    )
    is_deleted: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False, server_default=false())
    )


class OwnerRow(SQLModel, table=True):
    """Registered owner identity (existence-only)."""
    __tablename__ = "users_cookie"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(String(100), nullable=False, unique=True, index=True)
    )
