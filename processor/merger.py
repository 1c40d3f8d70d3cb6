"""
Signal Merger

Folds candidate signals into the persistent record store. For a key that
already has a record the category keeps the minimum (best priority) and
counts add up; a key without a record is inserted unless it is on the
denylist.
"""
from collections import OrderedDict
from typing import Iterable, List, Optional, Set

from loguru import logger

from config import settings
from repositories import SignalRepository, MergedSignalRecord
from .models import CandidateSignal, normalize_key


def fold_candidate(
    existing: Optional[MergedSignalRecord],
    candidate: CandidateSignal,
    source: str,
    now: float,
    denylist: Set[str],
) -> Optional[MergedSignalRecord]:
    """
    Merge one candidate into the existing record for its key.

    Returns:
        The new record state, or None if the candidate is discarded
    """
    if existing is not None:
        return MergedSignalRecord(
            key=existing.key,
            category=min(existing.category, candidate.category),
            count=existing.count + candidate.count,
            event=candidate.event,
            updated_at=now,
            first_seen_at=existing.first_seen_at,
            sources=sorted(set(existing.sources) | {source}),
        )

    if candidate.key in denylist:
        return None

    return MergedSignalRecord(
        key=candidate.key,
        category=candidate.category,
        count=candidate.count,
        event=candidate.event,
        updated_at=now,
        first_seen_at=now,
        sources=[source],
    )


class SignalMerger:
    """
    Per-cycle merge state.

    Create one merger per cycle; `touched` holds the latest state of every
    record written during the cycle, in first-touch order.
    """

    def __init__(self, signals: SignalRepository, denylist: Optional[Iterable[str]] = None):
        self.signals = signals
        if denylist is None:
            denylist = settings.SIGNAL_DENYLIST
        self.denylist = {normalize_key(key) for key in denylist}
        self.touched: "OrderedDict[str, MergedSignalRecord]" = OrderedDict()
        self.discarded = 0

    async def merge(self, candidate: CandidateSignal, source: str) -> Optional[MergedSignalRecord]:
        """
        Atomically fold one candidate into its stored record.

        Returns:
            The record written, or None if the candidate was discarded
        """
        now = self.signals.store.now()
        record = await self.signals.update_record(
            candidate.key,
            lambda existing: fold_candidate(existing, candidate, source, now, self.denylist),
        )

        if record is None:
            self.discarded += 1
            logger.debug(f"[Merger] Discarded denylisted key {candidate.key}")
            return None

        self.touched[record.key] = record
        return record

    async def merge_all(self, candidates: List[CandidateSignal], source: str) -> List[MergedSignalRecord]:
        """
        Merge a batch from one source.

        Returns:
            The record state written for each candidate that was not discarded
        """
        merged = []
        for candidate in candidates:
            record = await self.merge(candidate, source)
            if record is not None:
                merged.append(record)
        logger.info(f"[Merger] {source}: merged {len(merged)}/{len(candidates)} candidates")
        return merged

    @property
    def records(self) -> List[MergedSignalRecord]:
        return list(self.touched.values())
