"""
Source Fetcher

Reads recent content for every watched identity, tier by tier, with
bounded parallelism. A failing identity never aborts its tier or the
cycle: it is logged and yields an empty result with the error set.
"""
import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from loguru import logger

from config import settings
from utils.errors import FetchError
from .base_crawler import BaseSource, ContentItem, FetchResult


class SourceFetcher:
    """
    Concurrent fetcher over a content source.

    Example:
        fetcher = SourceFetcher(TwitterSource())
        results = await fetcher.fetch({1: ["elonmusk"], 2: ["rajgokal"]})
    """

    def __init__(
        self,
        source: BaseSource,
        own_identity: Optional[str] = None,
        count: Optional[int] = None,
        window_seconds: Optional[int] = None,
        concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        own_identity = settings.TWITTER_USERNAME if own_identity is None else own_identity
        self.own_identity = own_identity.strip().lstrip("@").lower()
        self.count = count or settings.FETCH_COUNT_PER_SOURCE
        self.window_seconds = window_seconds or settings.FETCH_WINDOW_SECONDS
        self.concurrency = concurrency or settings.FETCH_CONCURRENCY
        self.timeout = timeout or settings.EXTERNAL_CALL_TIMEOUT_SECONDS
        self._clock = clock

    async def fetch(self, tiers: Dict[int, List[str]]) -> List[FetchResult]:
        """
        Fetch every identity of every tier.

        Returns:
            One FetchResult per identity, ordered by tier then identity order
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch_tier(tier: int, identities: List[str]) -> List[FetchResult]:
            return await asyncio.gather(
                *(self._fetch_identity(semaphore, tier, identity) for identity in identities)
            )

        per_tier = await asyncio.gather(
            *(fetch_tier(tier, identities) for tier, identities in sorted(tiers.items()))
        )

        results = [result for tier_results in per_tier for result in tier_results]
        failed = sum(1 for result in results if not result.success)
        logger.info(
            f"[Fetcher] Fetched {sum(len(r.items) for r in results)} items "
            f"from {len(results)} sources ({failed} failed)"
        )
        return results

    async def _fetch_identity(
        self,
        semaphore: asyncio.Semaphore,
        tier: int,
        identity: str,
    ) -> FetchResult:
        async with semaphore:
            try:
                try:
                    items = await asyncio.wait_for(
                        self.source.collect(identity, self.count), timeout=self.timeout
                    )
                except asyncio.TimeoutError as e:
                    raise FetchError(identity, f"timed out after {self.timeout}s") from e
                except Exception as e:
                    raise FetchError(identity, str(e) or type(e).__name__) from e
            except FetchError as e:
                logger.warning(f"[Fetcher] {e}")
                return FetchResult(identity=identity, tier=tier, error=str(e))

        kept = self.filter_items(items)
        logger.debug(f"[Fetcher] {identity}: kept {len(kept)}/{len(items)} items")
        return FetchResult(identity=identity, tier=tier, items=kept)

    def filter_items(self, items: List[ContentItem]) -> List[ContentItem]:
        """Drop items outside the time window and echoes of our own posts."""
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        cutoff = now - timedelta(seconds=self.window_seconds)

        kept = []
        for item in items:
            if item.timestamp is None or item.timestamp < cutoff:
                continue
            if self._is_echo(item):
                continue
            kept.append(item)
        return kept

    def _is_echo(self, item: ContentItem) -> bool:
        if not self.own_identity:
            return False
        for entry in item.thread or [item]:
            if entry.author.strip().lstrip("@").lower() == self.own_identity:
                return True
        return False
