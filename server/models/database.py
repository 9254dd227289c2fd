"""SQLModel database models and tables."""

from datetime import datetime, timezone
from typing import Any, Optional
from sqlmodel import SQLModel, Field, Column, DateTime, JSON
from sqlalchemy import func


class KVEntry(SQLModel, table=True):
    """Key-value dataset storage (proxy settings, WARP accounts)."""

    __tablename__ = "kv_entries"

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True, unique=True, max_length=255)
    value: Any = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), server_default=func.now())
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), onupdate=func.now())
    )
