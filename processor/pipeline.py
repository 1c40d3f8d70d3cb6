"""
Watch Pipeline - one ingestion cycle from fetch to publish.

Pipeline Flow:
1. Resolve the fetch set (static tiers or the union of user watch lists)
2. Fetch recent content per identity
3. Infer candidate signals per identity
4. Merge candidates into the record store
5. Select and enrich the cycle highlight
6. Save the report and highlight
7. Publish the report to peer replicas
8. Purge expired store entries
"""
import asyncio
import json
from datetime import datetime
from typing import Optional

from loguru import logger

from config import settings
from crawlers import SourceFetcher, get_source
from repositories import KeyStore, SignalRepository, WatchRegistry
from utils.errors import InferenceError, ParseError, PublishError
from .alpha import AlphaSelector
from .inference import InferenceAdapter
from .merger import SignalMerger
from .models import CycleReport


class WatchPipeline:
    """
    Main pipeline orchestrator.

    Collaborators are injected so tests can replace the network-facing
    ones; `build_pipeline()` wires the defaults from settings.
    """

    def __init__(
        self,
        store: KeyStore,
        registry: WatchRegistry,
        fetcher: SourceFetcher,
        inference: InferenceAdapter,
        signals: Optional[SignalRepository] = None,
        enrichment=None,
        publisher=None,
        denylist=None,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.registry = registry
        self.fetcher = fetcher
        self.inference = inference
        self.signals = signals or SignalRepository(store)
        self.enrichment = enrichment
        self.publisher = publisher
        self.denylist = denylist
        self.timeout = timeout or settings.EXTERNAL_CALL_TIMEOUT_SECONDS

    async def run(self, run_id: Optional[str] = None) -> CycleReport:
        """
        Run one complete cycle.

        Per-source fetch, inference and parse failures are logged and
        skipped; other errors propagate to the caller.
        """
        started = datetime.now()
        run_id = run_id or started.strftime("%Y%m%d_%H%M%S")
        report = CycleReport(run_id=run_id, started_at=self.store.now())
        stats = {
            "sources": 0,
            "fetch_failed": 0,
            "items": 0,
            "inference_failed": 0,
            "parse_failed": 0,
            "candidates": 0,
            "merged": 0,
            "discarded": 0,
            "published": False,
        }

        logger.info(f"=== Starting Watch Cycle {run_id} ===")

        # Step 1-2: fetch
        tiers = await self.registry.get_fetch_tiers()
        results = await self.fetcher.fetch(tiers)
        stats["sources"] = len(results)

        # Step 3-4: infer and merge, in tier order
        merger = SignalMerger(self.signals, denylist=self.denylist)
        selector = AlphaSelector(timeout=self.timeout)

        for result in results:
            if not result.success:
                stats["fetch_failed"] += 1
                continue
            stats["items"] += len(result.items)

            try:
                candidates = await self.inference.extract(result)
            except InferenceError as e:
                stats["inference_failed"] += 1
                logger.warning(f"[Pipeline] Inference failed: {e}")
                continue
            except ParseError as e:
                stats["parse_failed"] += 1
                logger.warning(f"[Pipeline] Unparseable output for {result.identity}: {e}")
                continue

            stats["candidates"] += len(candidates)
            for record in await merger.merge_all(candidates, result.identity):
                selector.observe(record)

        stats["merged"] = len(merger.touched)
        stats["discarded"] = merger.discarded

        # Step 5-6: highlight and report
        report.records = merger.records
        report.highlight = await selector.select(merger.touched, self.enrichment)
        report.finished_at = self.store.now()
        report.stats = stats

        await self.signals.save_report(report.to_dict())
        await self.signals.save_highlight(report.highlight)

        # Step 7: publish
        stats["published"] = await self._publish(report)

        # Step 8: retention
        await self.store.purge_expired()

        duration = (datetime.now() - started).total_seconds()
        logger.info(f"=== Watch Cycle Complete in {duration:.1f}s ===")
        logger.info(
            f"Sources: {stats['sources']} ({stats['fetch_failed']} failed) | "
            f"Candidates: {stats['candidates']} | Merged: {stats['merged']} | "
            f"Highlight: {report.highlight.key if report.highlight else 'none'}"
        )
        return report

    async def _publish(self, report: CycleReport) -> bool:
        if self.publisher is None:
            return False
        payload = json.dumps(report.to_dict(), ensure_ascii=False)
        try:
            await asyncio.wait_for(self.publisher.publish(payload), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[Pipeline] Publish timed out after {self.timeout}s")
            return False
        except PublishError as e:
            logger.warning(f"[Pipeline] Publish failed: {e}")
            return False
        return True


def build_pipeline(store: Optional[KeyStore] = None) -> WatchPipeline:
    """Wire a pipeline with the collaborators selected by settings."""
    from enrichment import TokenDataProvider
    from consensus import get_publisher

    store = store or KeyStore()
    return WatchPipeline(
        store=store,
        registry=WatchRegistry(store),
        fetcher=SourceFetcher(get_source()),
        inference=InferenceAdapter(),
        enrichment=TokenDataProvider(store),
        publisher=get_publisher(),
    )
