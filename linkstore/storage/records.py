"""
Storage Records

Backend-neutral value objects passed between backends, repositories and
services. Field aliases match the log file line format:

    {"uuid": 1, "short_url": "abc123", "original_url": "...", "user_id": "", "is_deleted": false}
"""

from pydantic import BaseModel, ConfigDict, Field


class URLRecord(BaseModel):
    """One short key -> original URL mapping."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(default=0, alias="uuid", description="Sequence position within the backend")
    short_key: str = Field(..., alias="short_url")
    original_url: str = Field(..., alias="original_url")
    owner_id: str = Field(default="", alias="user_id")
    is_deleted: bool = Field(default=False, alias="is_deleted")

    def to_line(self) -> str:
        """Serialize as one log file line (newline terminated)."""
        return self.model_dump_json(by_alias=True) + "\n"


class OwnerRecord(BaseModel):
    """Registered owner identity."""
    model_config = ConfigDict(frozen=True)

    owner_id: str


class StoreStats(BaseModel):
    """Aggregate counters of a store."""
    urls: int
    owners: int
