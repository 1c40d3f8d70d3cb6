"""
Scheduler - Periodic watch cycles and command handling

Job Schedule:
1. Watch Cycle: one-shot job, re-added CYCLE_DELAY_SECONDS after the
   previous cycle finished (slow cycles push the next one back)
2. Agent Posts: interval job posting for users whose agent is due
3. Command consumer: background task running queued TriggerCycle and
   Repost commands

The last cycle start time is persisted in the key store, so neither a
restart nor a manual trigger begins a cycle before the delay has elapsed.

Usage:
    python scheduler.py              # Run scheduler daemon
    python scheduler.py --once       # Run one cycle and exit
"""
import asyncio
import sys
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from config import settings
from constants import CycleStatus, LAST_CYCLE_KEY_TEMPLATE, LAST_RESULT_KEY_TEMPLATE
from repositories import KeyStore
from processor import (
    WatchPipeline,
    CommandQueue,
    Command,
    TriggerCycle,
    Repost,
    RepostHandler,
    TwitterPoster,
    AgentPoster,
    build_pipeline,
)
from utils.errors import MergeError, SchedulerError


CYCLE_JOB_ID = "watch_cycle"
AGENT_JOB_ID = "agent_posts"


class WatcherScheduler:
    """
    Runs the watch pipeline on a self-rescheduling one-shot job.

    Exactly one cycle is in flight per process, whether it was started by
    the job or by a queued command.
    """

    def __init__(
        self,
        pipeline: WatchPipeline,
        store: Optional[KeyStore] = None,
        commands: Optional[CommandQueue] = None,
        repost_handler: Optional[RepostHandler] = None,
        agent: Optional[AgentPoster] = None,
        agent_interval_seconds: Optional[float] = None,
        delay_seconds: Optional[float] = None,
        first_run_delay_seconds: Optional[float] = None,
        own_identity: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.pipeline = pipeline
        self.store = store or pipeline.store
        self.commands = commands or CommandQueue()
        self.repost_handler = repost_handler
        self.agent = agent
        self.agent_interval_seconds = (
            settings.AGENT_CHECK_INTERVAL_SECONDS if agent_interval_seconds is None else agent_interval_seconds
        )
        self.delay_seconds = settings.CYCLE_DELAY_SECONDS if delay_seconds is None else delay_seconds
        self.first_run_delay_seconds = (
            settings.FIRST_RUN_DELAY_SECONDS if first_run_delay_seconds is None else first_run_delay_seconds
        )
        identity = (own_identity if own_identity is not None else settings.TWITTER_USERNAME) or "default"
        self.last_cycle_key = LAST_CYCLE_KEY_TEMPLATE.format(identity=identity)
        self.last_result_key = LAST_RESULT_KEY_TEMPLATE.format(identity=identity)
        self._clock = clock

        self.scheduler = AsyncIOScheduler()
        self._lock = asyncio.Lock()
        self._consumer: Optional[asyncio.Task] = None
        self.next_run_at: Optional[datetime] = None
        self.last_result: Optional[dict] = None

    # ============================================
    # CYCLE
    # ============================================

    async def _read_last_cycle(self) -> Optional[float]:
        try:
            value = await self.store.get(self.last_cycle_key)
        except MergeError as e:
            logger.warning(f"[Scheduler] Ignoring unreadable last cycle time: {e}")
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return None

    async def run_cycle(self) -> float:
        """
        Run one guarded cycle.

        The cycle is skipped when the persisted last start is less than the
        delay ago, whoever asked for it.

        Returns:
            Seconds to wait before the next scheduled cycle
        """
        async with self._lock:
            started = self._clock()
            try:
                last = await self._read_last_cycle()
                if last is not None and started < last + self.delay_seconds:
                    remaining = last + self.delay_seconds - started
                    logger.info(f"[Scheduler] Last cycle too recent, next in {remaining:.0f}s")
                    self.last_result = {"status": CycleStatus.SKIPPED.value, "at": started}
                    return remaining

                await self.store.set(self.last_cycle_key, started)
                report = await self.pipeline.run()
                self.last_result = {
                    "status": CycleStatus.SUCCESS.value,
                    "at": started,
                    "run_id": report.run_id,
                    "stats": report.stats,
                    "highlight": report.highlight.key if report.highlight else None,
                }
            except Exception as e:
                error = SchedulerError(f"Cycle failed: {e}")
                logger.exception(f"[Scheduler] {error}")
                self.last_result = {"status": CycleStatus.FAILED.value, "at": started, "error": str(error)}

            await self._save_last_result()
            return self.delay_seconds

    async def _save_last_result(self) -> None:
        try:
            await self.store.set(self.last_result_key, self.last_result)
        except Exception as e:
            logger.warning(f"[Scheduler] Could not persist last result: {e}")

    async def _cycle_job(self) -> None:
        delay = await self.run_cycle()
        self._schedule_next(delay)

    def _schedule_next(self, delay: float) -> None:
        self.next_run_at = datetime.now() + timedelta(seconds=delay)
        if not self.scheduler.running:
            return
        self.scheduler.add_job(
            self._cycle_job,
            DateTrigger(run_date=self.next_run_at),
            id=CYCLE_JOB_ID,
            name="Watch Cycle",
            replace_existing=True,
            max_instances=1,
        )
        logger.info(f"[Scheduler] Next cycle at {self.next_run_at:%Y-%m-%d %H:%M:%S}")

    # ============================================
    # AGENT POSTS
    # ============================================

    async def _agent_job(self) -> None:
        try:
            await self.agent.run()
        except Exception as e:
            logger.exception(f"[Scheduler] Agent posts failed: {e}")

    # ============================================
    # COMMANDS
    # ============================================

    async def handle_command(self, command: Command) -> None:
        if isinstance(command, TriggerCycle):
            delay = await self.run_cycle()
            self._schedule_next(delay)
        elif isinstance(command, Repost):
            if self.repost_handler is None:
                logger.warning("[Scheduler] Repost requested but no handler configured")
                return
            await self.repost_handler.handle(command)
        else:
            logger.warning(f"[Scheduler] Unknown command: {command!r}")

    async def _consume_commands(self) -> None:
        while True:
            command = await self.commands.get()
            try:
                await self.handle_command(command)
            except Exception as e:
                logger.warning(f"[Scheduler] Command {type(command).__name__} failed: {e}")
            finally:
                self.commands.task_done()

    # ============================================
    # LIFECYCLE
    # ============================================

    async def start(self) -> None:
        """Start the scheduler. Must be called from a running event loop."""
        if self.pipeline.publisher is not None:
            await self.pipeline.publisher.start_node()

        self.scheduler.start()
        self._schedule_next(self.first_run_delay_seconds)
        if self.agent is not None:
            self.scheduler.add_job(
                self._agent_job,
                IntervalTrigger(seconds=self.agent_interval_seconds),
                id=AGENT_JOB_ID,
                name="Agent Posts",
                replace_existing=True,
                max_instances=1,
            )
            logger.info(f"[Scheduler] Agent posts checked every {self.agent_interval_seconds:.0f}s")
        self._consumer = asyncio.create_task(self._consume_commands())
        logger.info("Scheduler started")

    def _resources(self) -> list:
        """Collaborators holding connections, each listed once."""
        candidates = [
            self.pipeline.publisher,
            self.pipeline.fetcher.source,
            self.pipeline.enrichment,
            self.repost_handler.poster if self.repost_handler is not None else None,
            self.agent.poster if self.agent is not None else None,
        ]
        resources = []
        for resource in candidates:
            if resource is None:
                continue
            if any(resource is seen for seen in resources):
                continue
            resources.append(resource)
        return resources

    async def stop(self) -> None:
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        for resource in self._resources():
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"[Scheduler] Closing {type(resource).__name__} failed: {e}")
        logger.info("Scheduler stopped")

    async def status(self) -> dict:
        return {
            "running": self.scheduler.running,
            "cycle_in_progress": self._lock.locked(),
            "last_cycle_at": await self._read_last_cycle(),
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_result": self.last_result,
            "queued_commands": self.commands.qsize(),
        }

    async def run_once(self) -> bool:
        """Run one guarded cycle now. Returns False only if the cycle failed."""
        logger.info("Running watch cycle once...")
        await self.run_cycle()
        status = self.last_result["status"] if self.last_result else None
        if status == CycleStatus.SKIPPED.value:
            logger.info("Cycle skipped, the last one is too recent")
            return True
        success = status == CycleStatus.SUCCESS.value
        if success:
            logger.info("Cycle completed successfully")
        else:
            logger.error("Cycle failed")
        return success


def build_scheduler(
    store: Optional[KeyStore] = None,
    commands: Optional[CommandQueue] = None,
) -> WatcherScheduler:
    """Wire a scheduler with the collaborators selected by settings."""
    pipeline = build_pipeline(store)
    poster = TwitterPoster()
    agent = None
    if settings.AGENT_ENABLED:
        agent = AgentPoster(pipeline.registry, pipeline.signals, poster)
    return WatcherScheduler(
        pipeline,
        commands=commands,
        repost_handler=RepostHandler(pipeline.registry, poster),
        agent=agent,
    )


async def _run(once: bool) -> int:
    from database import init_engine, close_engine, run_migrations

    await asyncio.to_thread(run_migrations)
    await init_engine()

    scheduler = build_scheduler()
    try:
        if once:
            return 0 if await scheduler.run_once() else 1

        await scheduler.start()
        await asyncio.Event().wait()
        return 0
    finally:
        await scheduler.stop()
        await close_engine()


def main():
    """Main entry point with CLI arguments."""
    import argparse

    from utils.logger import setup_logging
    from config import ensure_directories

    parser = argparse.ArgumentParser(description="Signal Watcher Scheduler")
    parser.add_argument("--once", action="store_true", help="Run one cycle and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    ensure_directories()
    setup_logging(
        log_dir=settings.LOG_DIR,
        log_level="DEBUG" if args.verbose else settings.LOG_LEVEL,
        app_name="scheduler",
    )

    try:
        sys.exit(asyncio.run(_run(args.once)))
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")


if __name__ == "__main__":
    main()
