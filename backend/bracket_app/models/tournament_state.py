from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TournamentState(SQLModel, table=True):
    """Saved tournament snapshot, one row per storage key (JSON document in state_json)."""

    id: Optional[int] = Field(default=None, primary_key=True)
    storage_key: str = Field(index=True, unique=True)
    state_json: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
