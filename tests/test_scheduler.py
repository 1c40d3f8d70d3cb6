from datetime import datetime
from types import SimpleNamespace

import pytest

from conftest import FakeEnrichment, FakePublisher, FakeSource
from constants import CycleStatus
from processor import CommandQueue, CycleReport, Repost, RepostHandler, TriggerCycle
from processor.repost import ContentPoster
from repositories import WatchRegistry
from scheduler import WatcherScheduler


class StubPipeline:
    def __init__(self, store, fail=False):
        self.store = store
        self.fail = fail
        self.runs = 0
        self.publisher = None
        self.fetcher = SimpleNamespace(source=None)
        self.enrichment = None

    async def run(self, run_id=None):
        self.runs += 1
        if self.fail:
            raise RuntimeError("store offline")
        return CycleReport(run_id=f"run-{self.runs}", started_at=self.store.now(), stats={"merged": 0})


class RecordingPoster(ContentPoster):
    def __init__(self):
        self.posts = []
        self.closes = 0

    async def post(self, text, profile):
        self.posts.append((profile.user_id, text))
        return f"post-{len(self.posts)}"

    async def close(self):
        self.closes += 1


class ClosingSource(FakeSource):
    closed = False

    async def close(self):
        self.closed = True


class StubAgent:
    def __init__(self, poster, fail=False):
        self.poster = poster
        self.fail = fail
        self.runs = 0

    async def run(self, now=None):
        self.runs += 1
        if self.fail:
            raise RuntimeError("registry offline")
        return {"due": 0, "posted": 0, "throttled": 0, "failed": 0}


def _scheduler(store, clock, pipeline=None, **kwargs):
    kwargs.setdefault("first_run_delay_seconds", 0)
    return WatcherScheduler(
        pipeline or StubPipeline(store),
        store=store,
        delay_seconds=600,
        own_identity="watcherbot",
        clock=clock,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_cycle_runs_then_guard_skips_until_delay_elapsed(store, clock):
    pipeline = StubPipeline(store)
    scheduler = _scheduler(store, clock, pipeline)

    assert await scheduler.run_cycle() == 600
    assert scheduler.last_result["status"] == CycleStatus.SUCCESS.value

    clock.advance(100)
    assert await scheduler.run_cycle() == pytest.approx(500)
    assert scheduler.last_result["status"] == CycleStatus.SKIPPED.value
    assert pipeline.runs == 1

    clock.advance(500)
    assert await scheduler.run_cycle() == 600
    assert pipeline.runs == 2


@pytest.mark.asyncio
async def test_guard_survives_restart(store, clock):
    await _scheduler(store, clock).run_cycle()

    clock.advance(60)
    restarted_pipeline = StubPipeline(store)
    restarted = _scheduler(store, clock, restarted_pipeline)

    assert await restarted.run_cycle() == pytest.approx(540)
    assert restarted_pipeline.runs == 0
    assert (await restarted.status())["last_cycle_at"] == clock.now - 60


@pytest.mark.asyncio
async def test_trigger_inside_delay_is_skipped_and_reschedules_for_remaining(store, clock):
    pipeline = StubPipeline(store)
    scheduler = _scheduler(store, clock, pipeline)
    await scheduler.run_cycle()

    clock.advance(100)
    before = datetime.now()
    await scheduler.handle_command(TriggerCycle())

    assert pipeline.runs == 1
    assert scheduler.last_result["status"] == CycleStatus.SKIPPED.value
    remaining = (scheduler.next_run_at - before).total_seconds()
    assert 495 <= remaining <= 510


@pytest.mark.asyncio
async def test_failed_cycle_is_recorded_and_next_delay_returned(store, clock):
    scheduler = _scheduler(store, clock, StubPipeline(store, fail=True))

    assert await scheduler.run_cycle() == 600

    assert scheduler.last_result["status"] == CycleStatus.FAILED.value
    assert "store offline" in scheduler.last_result["error"]
    saved = await store.get(scheduler.last_result_key)
    assert saved["status"] == CycleStatus.FAILED.value


@pytest.mark.asyncio
async def test_trigger_command_runs_cycle_and_sets_next_run(store, clock):
    pipeline = StubPipeline(store)
    scheduler = _scheduler(store, clock, pipeline)

    await scheduler.handle_command(TriggerCycle())

    assert pipeline.runs == 1
    assert scheduler.next_run_at is not None
    assert scheduler.scheduler.get_job("watch_cycle") is None


@pytest.mark.asyncio
async def test_repost_command_charges_user_and_posts(store, clock):
    poster = RecordingPoster()
    handler = RepostHandler(WatchRegistry(store, mode="dynamic"), poster)
    scheduler = _scheduler(store, clock, repost_handler=handler)

    await scheduler.handle_command(Repost(user_id="u1", text="  gm  "))

    assert poster.posts == [("u1", "gm")]
    profile = await handler.registry.get_profile("u1")
    assert profile.throttle.current_count == 1


@pytest.mark.asyncio
async def test_start_consumes_queued_commands_and_stop_shuts_down(store, clock):
    pipeline = StubPipeline(store)
    pipeline.publisher = FakePublisher()
    commands = CommandQueue()
    scheduler = _scheduler(store, clock, pipeline, commands=commands, first_run_delay_seconds=3600)

    await scheduler.start()
    try:
        assert pipeline.publisher.started is True
        assert scheduler.scheduler.get_job("watch_cycle") is not None

        commands.submit(TriggerCycle())
        await commands.join()

        status = await scheduler.status()
        assert status["running"] is True
        assert status["queued_commands"] == 0
        assert status["last_result"]["status"] == CycleStatus.SUCCESS.value
    finally:
        await scheduler.stop()

    assert scheduler.scheduler.running is False


@pytest.mark.asyncio
async def test_run_once_inside_delay_skips_without_failing(store, clock):
    pipeline = StubPipeline(store)
    scheduler = _scheduler(store, clock, pipeline)
    await scheduler.run_cycle()

    clock.advance(10)

    assert await scheduler.run_once() is True
    assert pipeline.runs == 1
    assert scheduler.last_result["status"] == CycleStatus.SKIPPED.value


@pytest.mark.asyncio
async def test_agent_job_is_scheduled_and_failures_are_contained(store, clock):
    agent = StubAgent(RecordingPoster(), fail=True)
    scheduler = _scheduler(store, clock, agent=agent, agent_interval_seconds=3600, first_run_delay_seconds=3600)

    await scheduler.start()
    try:
        assert scheduler.scheduler.get_job("agent_posts") is not None
        await scheduler._agent_job()
        assert agent.runs == 1
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_stop_closes_each_connection_holder_once(store, clock):
    pipeline = StubPipeline(store)
    pipeline.publisher = FakePublisher()
    pipeline.enrichment = FakeEnrichment()
    pipeline.fetcher = SimpleNamespace(source=ClosingSource({}))
    poster = RecordingPoster()
    handler = RepostHandler(WatchRegistry(store, mode="dynamic"), poster)
    scheduler = _scheduler(
        store, clock, pipeline,
        repost_handler=handler, agent=StubAgent(poster), first_run_delay_seconds=3600,
    )

    await scheduler.start()
    await scheduler.stop()

    assert pipeline.publisher.closed is True
    assert pipeline.fetcher.source.closed is True
    assert pipeline.enrichment.closed is True
    assert poster.closes == 1
