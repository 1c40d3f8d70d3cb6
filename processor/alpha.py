"""
Alpha Selector

Picks the single best record touched in a cycle (lowest merged category,
first seen on ties) and turns it into an enriched highlight.
"""
import asyncio
from typing import Mapping, Optional

from loguru import logger

from config import settings
from repositories import MergedSignalRecord, AlphaHighlight


class AlphaSelector:
    """Tracks the winning record of one cycle."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.EXTERNAL_CALL_TIMEOUT_SECONDS
        self.winner: Optional[str] = None
        self._best_category: Optional[int] = None

    def observe(self, record: MergedSignalRecord) -> None:
        """
        Consider a record just written by the merger.

        The category compared is the merged one, so a stored record with a
        better category than this cycle's candidate keeps its rank.
        """
        if self._best_category is None or record.category < self._best_category:
            self.winner = record.key
            self._best_category = record.category

    async def select(
        self,
        touched: Mapping[str, MergedSignalRecord],
        enrichment=None,
    ) -> Optional[AlphaHighlight]:
        """
        Build the highlight for the winner.

        Args:
            touched: Records written this cycle, by key (latest state)
            enrichment: Object with an async fetch_info(key) -> str, or None

        Returns:
            AlphaHighlight, or None if nothing was observed
        """
        if self.winner is None:
            return None

        record = touched.get(self.winner)
        if record is None:
            logger.warning(f"[Alpha] Winner {self.winner} has no merged record")
            return None

        info = ""
        if enrichment is not None:
            try:
                info = await asyncio.wait_for(enrichment.fetch_info(record.key), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning(f"[Alpha] Enrichment timed out for {record.key}")
            except Exception as e:
                logger.warning(f"[Alpha] Enrichment failed for {record.key}: {e}")

        logger.info(f"[Alpha] Highlight: {record.key} (category {record.category}, count {record.count})")
        return AlphaHighlight(
            key=record.key,
            title=f"mentioned {record.count} times",
            updated_at=record.updated_at,
            text=f"{record.event}\n{info or ''}",
            category=record.category,
            count=record.count,
        )
