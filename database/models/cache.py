"""
Cache Entry Model

Backing table for the namespaced key/value store.
"""
from typing import Optional

from sqlalchemy import String, Float, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class CacheEntry(Base, TimestampMixin):
    """
    One namespaced key with a JSON-serialized value.

    Keys look like "<namespace>/<key>" (e.g. "signals/records/ABC").
    expires_at is an epoch timestamp in seconds; NULL means the entry
    never expires. Expired rows are invisible to reads and removed by
    the periodic purge.
    """
    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index('idx_cache_entries_expires_at', 'expires_at'),
    )
