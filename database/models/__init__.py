"""
SQLAlchemy ORM models.
"""
from .base import Base, TimestampMixin
from .cache import CacheEntry

__all__ = [
    "Base",
    "TimestampMixin",
    "CacheEntry",
]
