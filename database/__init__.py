"""
Database Module - Signal Watcher

Structure:
    database/
    ├── __init__.py      # This file - public API
    ├── session.py       # SQLAlchemy async engine and sessions
    ├── init.py          # Alembic migration runner
    └── models/          # SQLAlchemy ORM models
        ├── __init__.py
        ├── base.py
        └── cache.py

Usage:
    from database import get_session
    from database.models import CacheEntry

    async with get_session() as session:
        entry = await session.get(CacheEntry, "signals/report")
"""

# SQLAlchemy Models
from .models import (
    Base,
    TimestampMixin,
    CacheEntry,
)

# Session Management
from .session import (
    init_engine,
    close_engine,
    create_tables,
    get_session,
)

# Migrations
from .init import run_migrations

__all__ = [
    # SQLAlchemy Models
    "Base",
    "TimestampMixin",
    "CacheEntry",
    # Session Management
    "init_engine",
    "close_engine",
    "create_tables",
    "get_session",
    # Migrations
    "run_migrations",
]
