"""
Cache Repository

Handles all database operations for namespaced key/value entries.
Expiry is evaluated against the `now` passed in by the caller so the
key store can run on an injected clock.
"""
from typing import Optional, Sequence

from sqlalchemy import select, delete, and_, or_

from database.models import CacheEntry
from .base import BaseRepository


def _is_live(now: float):
    return or_(CacheEntry.expires_at.is_(None), CacheEntry.expires_at > now)


class CacheRepository(BaseRepository[CacheEntry]):
    """Repository for cache entry operations."""

    model = CacheEntry

    async def get_live(self, key: str, now: float) -> Optional[CacheEntry]:
        """Get an entry by key, ignoring it if expired."""
        entry = await self.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= now:
            return None
        return entry

    async def upsert(
        self,
        key: str,
        value: str,
        expires_at: Optional[float] = None,
    ) -> CacheEntry:
        """Insert or overwrite an entry."""
        entry = await self.get(key)
        if entry is None:
            return await self.add(CacheEntry(key=key, value=value, expires_at=expires_at))

        entry.value = value
        entry.expires_at = expires_at
        await self.session.flush()
        return entry

    async def scan(
        self,
        prefix: str,
        now: float,
        after: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[CacheEntry]:
        """
        Get live entries under a prefix in key order.

        Args:
            prefix: Namespace prefix, e.g. "signals/records/"
            now: Current epoch time for expiry checks
            after: Only keys strictly greater than this one
            limit: Maximum number of entries
        """
        conditions = [CacheEntry.key.startswith(prefix, autoescape=True), _is_live(now)]
        if after is not None:
            conditions.append(CacheEntry.key > after)

        stmt = (
            select(CacheEntry)
            .where(and_(*conditions))
            .order_by(CacheEntry.key)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def purge_expired(self, now: float) -> int:
        """Delete every expired entry. Returns the number removed."""
        stmt = delete(CacheEntry).where(
            and_(CacheEntry.expires_at.is_not(None), CacheEntry.expires_at <= now)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
