"""
Base Source - Abstract base class for all content sources
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, List, Optional

from loguru import logger


@dataclass
class ContentItem:
    """One post fetched from an external identity."""
    item_id: str
    source: str
    author: str
    text: str
    timestamp: Optional[datetime] = None
    likes: int = 0
    replies: int = 0
    reposts: int = 0
    url: str = ""
    thread: List["ContentItem"] = field(default_factory=list)

    @property
    def interactions(self) -> int:
        return self.likes + self.replies + self.reposts

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "source": self.source,
            "author": self.author,
            "text": self.text,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "likes": self.likes,
            "replies": self.replies,
            "reposts": self.reposts,
            "url": self.url,
            "thread": [item.item_id for item in self.thread],
        }


@dataclass
class FetchResult:
    """Items fetched for one identity in one cycle."""
    identity: str
    tier: int
    items: List[ContentItem] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "tier": self.tier,
            "success": self.success,
            "count": len(self.items),
            "error": self.error,
        }


class BaseSource(ABC):
    """Abstract base class for content sources."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def get_recent_content(self, identity: str, count: int) -> AsyncIterator[ContentItem]:
        """
        Yield up to `count` recent items posted by `identity`, newest first.
        Must be implemented by subclasses as an async generator.
        """

    async def collect(self, identity: str, count: int) -> List[ContentItem]:
        """Drain get_recent_content into a list."""
        items = []
        async for item in self.get_recent_content(identity, count):
            items.append(item)
            if len(items) >= count:
                break
        logger.debug(f"[{self.name}] Fetched {len(items)} items for {identity}")
        return items

    async def close(self) -> None:
        """Release any held connections."""
