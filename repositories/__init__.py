"""
Repositories Package

Provides data access on top of the key store.
"""

from .base import BaseRepository
from .cache import CacheRepository
from .key_store import KeyStore
from .models import (
    MergedSignalRecord,
    AlphaHighlight,
    WatchedSource,
    ThrottleState,
    AgentConfig,
    UserWatchProfile,
    normalize_identity,
)
from .signals import SignalRepository, record_key
from .watch_registry import WatchRegistry
from .reader import WatchlistReader, Page, encode_cursor, decode_cursor

__all__ = [
    "BaseRepository",
    "CacheRepository",
    "KeyStore",
    # Records
    "MergedSignalRecord",
    "AlphaHighlight",
    "WatchedSource",
    "ThrottleState",
    "AgentConfig",
    "UserWatchProfile",
    "normalize_identity",
    # Repositories
    "SignalRepository",
    "record_key",
    "WatchRegistry",
    "WatchlistReader",
    "Page",
    "encode_cursor",
    "decode_cursor",
]
