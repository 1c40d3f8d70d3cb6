"""
Signal Repository

Typed access to merged signal records, the latest cycle report and the
current highlight, all stored in the key store.
"""
from typing import Callable, Optional

from loguru import logger

from config import settings
from constants import SIGNAL_RECORD_PREFIX, SIGNAL_REPORT_KEY, SIGNAL_ALPHA_KEY
from utils.errors import MergeError
from .key_store import KeyStore
from .models import MergedSignalRecord, AlphaHighlight


RecordUpdater = Callable[[Optional[MergedSignalRecord]], Optional[MergedSignalRecord]]


def record_key(key: str) -> str:
    """Store key for a subject key."""
    return f"{SIGNAL_RECORD_PREFIX}{key}"


class SignalRepository:
    """Repository for merged signal records."""

    def __init__(self, store: KeyStore, record_ttl: Optional[int] = None):
        self.store = store
        self.record_ttl = settings.SIGNAL_RECORD_TTL_SECONDS if record_ttl is None else record_ttl

    # ============================================
    # RECORDS
    # ============================================

    async def get_record(self, key: str) -> Optional[MergedSignalRecord]:
        """
        Get a merged record by subject key.

        Raises:
            MergeError: If the stored entry is unreadable
        """
        raw = await self.store.get(record_key(key))
        if raw is None:
            return None
        return MergedSignalRecord.from_dict(raw)

    async def set_record(self, record: MergedSignalRecord) -> None:
        await self.store.set(record_key(record.key), record.to_dict(), ttl=self.record_ttl)

    async def update_record(self, key: str, fn: RecordUpdater) -> Optional[MergedSignalRecord]:
        """
        Atomically apply fn to the record stored under key.

        fn receives the existing record (or None) and returns the record
        to write, or None to leave the store untouched. An unreadable
        existing entry is logged and handed to fn as None.

        Returns:
            The record written, or None
        """
        def apply(raw, discard_existing: bool):
            existing = None
            if raw is not None and not discard_existing:
                existing = MergedSignalRecord.from_dict(raw)
            updated = fn(existing)
            return updated.to_dict() if updated is not None else None

        store_key = record_key(key)
        try:
            written = await self.store.update(
                store_key, lambda raw: apply(raw, False), ttl=self.record_ttl
            )
        except MergeError as e:
            logger.warning(f"[Signals] Unreadable record '{key}', treating as absent: {e}")
            written = await self.store.update(
                store_key,
                lambda raw: apply(raw, True),
                ttl=self.record_ttl,
                ignore_corrupt=True,
            )

        if written is None:
            return None
        return MergedSignalRecord.from_dict(written)

    # ============================================
    # REPORT / HIGHLIGHT
    # ============================================

    async def save_report(self, report: dict) -> None:
        await self.store.set(SIGNAL_REPORT_KEY, report)

    async def get_latest_report(self) -> Optional[dict]:
        return await self.store.get(SIGNAL_REPORT_KEY)

    async def save_highlight(self, highlight: Optional[AlphaHighlight]) -> None:
        """Persist the cycle highlight; None clears it."""
        if highlight is None:
            await self.store.delete(SIGNAL_ALPHA_KEY)
            return
        await self.store.set(SIGNAL_ALPHA_KEY, highlight.to_dict())

    async def get_highlight(self) -> Optional[AlphaHighlight]:
        raw = await self.store.get(SIGNAL_ALPHA_KEY)
        if raw is None:
            return None
        return AlphaHighlight.from_dict(raw)
