"""
Watchlist Reader

Cursor-paginated, read-only view over merged signal records. Keys are
returned in lexical order; the cursor is the URL-safe base64 of the last
subject key examined, so chained reads over a fixed store never skip or
repeat a key.
"""
import base64
import binascii
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from loguru import logger

from config import settings
from constants import SIGNAL_RECORD_PREFIX
from utils.errors import InvalidCursorError, MergeError
from .key_store import KeyStore
from .models import MergedSignalRecord, AlphaHighlight, normalize_identity
from .signals import SignalRepository, record_key


def encode_cursor(key: str) -> str:
    return base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> str:
    """
    Raises:
        InvalidCursorError: If the cursor is not a valid encoded key
    """
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        key = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}") from e
    if not key:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}")
    return key


@dataclass
class Page:
    items: List[MergedSignalRecord] = field(default_factory=list)
    next_cursor: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "items": [item.to_dict() for item in self.items],
            "nextCursor": self.next_cursor,
        }


class WatchlistReader:
    """Read-only access to records, the latest report and the highlight."""

    def __init__(self, store: KeyStore, signals: Optional[SignalRepository] = None):
        self.store = store
        self.signals = signals or SignalRepository(store)

    async def get_page(
        self,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
        watchlist: Optional[Iterable[str]] = None,
    ) -> Page:
        """
        Get one page of merged records.

        Args:
            cursor: Value of a previous page's next_cursor, or None to start
            page_size: Number of records per page (capped at WATCH_PAGE_SIZE_MAX)
            watchlist: Only return records produced by these identities

        Returns:
            Page whose next_cursor is None once the key space is exhausted
        """
        page_size = settings.WATCH_PAGE_SIZE if page_size is None else page_size
        if page_size < 1:
            raise ValueError("page_size must be positive")
        page_size = min(page_size, settings.WATCH_PAGE_SIZE_MAX)

        wanted = None
        if watchlist is not None:
            wanted = {normalize_identity(i).lower() for i in watchlist}

        last_examined = record_key(decode_cursor(cursor)) if cursor else None
        items: List[MergedSignalRecord] = []
        exhausted = False

        while len(items) < page_size and not exhausted:
            batch = await self.store.scan_raw(SIGNAL_RECORD_PREFIX, after=last_examined, limit=page_size)
            exhausted = len(batch) < page_size

            for position, (store_key, raw) in enumerate(batch, start=1):
                last_examined = store_key
                record = self._decode(store_key, raw)
                if record is None:
                    continue
                if wanted is not None and not wanted.intersection(s.lower() for s in record.sources):
                    continue
                items.append(record)
                if len(items) == page_size:
                    if position < len(batch):
                        exhausted = False
                    break

        has_more = False
        if not exhausted and last_examined is not None:
            has_more = bool(await self.store.scan_raw(SIGNAL_RECORD_PREFIX, after=last_examined, limit=1))

        next_cursor = None
        if has_more:
            next_cursor = encode_cursor(last_examined[len(SIGNAL_RECORD_PREFIX):])
        return Page(items=items, next_cursor=next_cursor)

    def _decode(self, store_key: str, raw: str) -> Optional[MergedSignalRecord]:
        try:
            return MergedSignalRecord.from_dict(self.store.decode_entry(store_key, raw))
        except MergeError as e:
            logger.warning(f"[Reader] Skipping unreadable record '{store_key}': {e}")
            return None

    async def get_latest_report(self) -> Optional[dict]:
        return await self.signals.get_latest_report()

    async def get_highlight(self) -> Optional[AlphaHighlight]:
        try:
            return await self.signals.get_highlight()
        except MergeError as e:
            logger.warning(f"[Reader] Unreadable highlight: {e}")
            return None
