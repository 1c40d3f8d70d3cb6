"""
Cycle-level data models.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from repositories.models import MergedSignalRecord, AlphaHighlight


def normalize_key(raw: str) -> str:
    """Canonical subject key: stripped, without a leading '$', upper-cased."""
    return raw.strip().lstrip("$").strip().upper()


@dataclass
class CandidateSignal:
    """One subject extracted from one identity's content in one cycle."""
    key: str
    category: int
    count: int = 1
    event: str = ""

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "category": self.category,
            "count": self.count,
            "event": self.event,
        }


@dataclass
class CycleReport:
    """Outcome of one watch cycle."""
    run_id: str
    started_at: float
    finished_at: Optional[float] = None
    records: List[MergedSignalRecord] = field(default_factory=list)
    highlight: Optional[AlphaHighlight] = None
    stats: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "records": [record.to_dict() for record in self.records],
            "highlight": self.highlight.to_dict() if self.highlight else None,
            "stats": dict(self.stats),
        }
