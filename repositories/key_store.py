"""
Key Store

Namespaced get/set/delete with per-entry TTL on top of the cache_entries
table. Values are JSON-serialized. Every operation runs in its own short
session, and `update` performs its read-modify-write inside a single
transaction so one key is never half-written.
"""
import json
import time
from typing import Any, Callable, List, Optional, Tuple

from loguru import logger

from database.session import get_session
from utils.errors import CorruptEntryError
from .cache import CacheRepository


class KeyStore:
    """
    Persistent key/value store with expiry.

    Example:
        store = KeyStore()
        await store.set("signals/report", [...], ttl=3600)
        report = await store.get("signals/report")
    """

    def __init__(
        self,
        session_factory: Callable = get_session,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            session_factory: Async context manager factory yielding a session
            clock: Returns the current epoch time in seconds
        """
        self._session_factory = session_factory
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def _expires_at(self, ttl: Optional[float]) -> Optional[float]:
        if not ttl or ttl <= 0:
            return None
        return self.now() + ttl

    @staticmethod
    def _decode(key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except ValueError as e:
            raise CorruptEntryError(key) from e

    # ============================================
    # SINGLE KEY OPERATIONS
    # ============================================

    async def get(self, key: str) -> Optional[Any]:
        """
        Get the decoded value of a live key.

        Raises:
            CorruptEntryError: If the stored value is not valid JSON
        """
        async with self._session_factory() as session:
            entry = await CacheRepository(session).get_live(key, self.now())
            if entry is None:
                return None
            return self._decode(key, entry.value)

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value. ttl is in seconds; None or 0 means no expiry."""
        payload = json.dumps(value, ensure_ascii=False)
        async with self._session_factory() as session:
            await CacheRepository(session).upsert(key, payload, self._expires_at(ttl))

    async def delete(self, key: str) -> bool:
        async with self._session_factory() as session:
            return await CacheRepository(session).delete(key)

    async def update(
        self,
        key: str,
        fn: Callable[[Optional[Any]], Optional[Any]],
        ttl: Optional[float] = None,
        ignore_corrupt: bool = False,
    ) -> Optional[Any]:
        """
        Atomically read, transform and write one key.

        fn receives the current decoded value (None when absent or expired)
        and returns the new value, or None to leave the key untouched.
        Exceptions raised by fn roll the transaction back.

        Args:
            ignore_corrupt: Pass None to fn instead of raising when the
                stored value is not valid JSON

        Returns:
            The value written, or None if nothing was written
        """
        async with self._session_factory() as session:
            repo = CacheRepository(session)
            entry = await repo.get_live(key, self.now())

            current = None
            if entry is not None:
                try:
                    current = self._decode(key, entry.value)
                except CorruptEntryError:
                    if not ignore_corrupt:
                        raise
                    logger.warning(f"[KeyStore] Overwriting corrupt entry '{key}'")

            updated = fn(current)
            if updated is None:
                return None

            payload = json.dumps(updated, ensure_ascii=False)
            await repo.upsert(key, payload, self._expires_at(ttl))
            return updated

    # ============================================
    # RANGE OPERATIONS
    # ============================================

    async def scan_raw(
        self,
        prefix: str,
        after: Optional[str] = None,
        limit: int = 100,
    ) -> List[Tuple[str, str]]:
        """
        List live (key, raw JSON text) pairs under a prefix in key order.

        Values are not decoded so a single corrupt entry cannot break a
        whole page; callers decode with `decode_entry`.
        """
        async with self._session_factory() as session:
            entries = await CacheRepository(session).scan(prefix, self.now(), after=after, limit=limit)
            return [(entry.key, entry.value) for entry in entries]

    def decode_entry(self, key: str, raw: str) -> Any:
        """Decode a raw value returned by scan_raw."""
        return self._decode(key, raw)

    async def purge_expired(self) -> int:
        """Physically remove expired entries."""
        async with self._session_factory() as session:
            removed = await CacheRepository(session).purge_expired(self.now())
        if removed:
            logger.info(f"[KeyStore] Purged {removed} expired entries")
        return removed
