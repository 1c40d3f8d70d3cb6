from datetime import datetime, timezone

import pytest

from repositories import WatchRegistry


def _epoch(*args) -> float:
    return datetime(*args, tzinfo=timezone.utc).timestamp()


@pytest.mark.asyncio
async def test_register_user_is_idempotent(store):
    registry = WatchRegistry(store, mode="dynamic")

    first = await registry.register_user("u1")
    await registry.add_watch("u1", "alice")
    second = await registry.register_user("u1")

    assert first.throttle.daily_limit == 10
    assert [s.identity for s in second.watch_list] == ["alice"]
    assert [p.user_id for p in await registry.all_profiles()] == ["u1"]


@pytest.mark.asyncio
async def test_add_watch_normalizes_and_deduplicates(store):
    registry = WatchRegistry(store, mode="dynamic")

    assert await registry.add_watch("u1", " @alice ", tier=1, tags=["defi"]) is True
    assert await registry.add_watch("u1", "alice") is False

    watches = await registry.list_watches("u1")
    assert [(w.identity, w.tier, w.tags) for w in watches] == [("alice", 1, ["defi"])]


@pytest.mark.asyncio
async def test_add_watch_rejects_bad_input(store):
    registry = WatchRegistry(store, mode="dynamic")

    with pytest.raises(ValueError):
        await registry.add_watch("u1", "@")
    with pytest.raises(ValueError):
        await registry.add_watch("u1", "alice", tier=4)


@pytest.mark.asyncio
async def test_remove_and_is_watched(store):
    registry = WatchRegistry(store, mode="dynamic")
    await registry.add_watch("u1", "alice")

    assert await registry.is_watched("u1", "@alice") is True
    assert await registry.is_watched("nobody", "alice") is False
    assert await registry.remove_watch("u1", "alice") is True
    assert await registry.remove_watch("u1", "alice") is False
    assert await registry.is_watched("u1", "alice") is False


@pytest.mark.asyncio
async def test_dynamic_fetch_tiers_use_best_tier_across_users(store):
    registry = WatchRegistry(store, mode="dynamic")
    await registry.add_watch("u1", "alice", tier=3)
    await registry.add_watch("u2", "alice", tier=1)
    await registry.add_watch("u2", "bob", tier=2)
    await registry.add_watch("u1", "carol", tier=3)

    assert await registry.get_all_watch_list() == {"alice", "bob", "carol"}
    assert await registry.get_fetch_tiers() == {1: ["alice"], 2: ["bob"], 3: ["carol"]}


@pytest.mark.asyncio
async def test_static_fetch_tiers_come_from_configuration(store):
    registry = WatchRegistry(store, mode="static", static_tiers={2: ["@bob"], 1: ["alice"]})
    await registry.add_watch("u1", "ignored", tier=1)

    assert await registry.get_fetch_tiers() == {1: ["alice"], 2: ["bob"]}


@pytest.mark.asyncio
async def test_record_action_enforces_daily_limit_and_resets_next_day(store):
    registry = WatchRegistry(store, mode="dynamic")
    profile = await registry.register_user("u1")
    profile.throttle.daily_limit = 2
    await registry.save_profile(profile)

    morning = _epoch(2024, 5, 1, 9, 0)
    assert await registry.record_action("u1", morning) is True
    assert await registry.record_action("u1", morning + 60) is True
    assert await registry.record_action("u1", morning + 120) is False

    next_day = _epoch(2024, 5, 2, 0, 5)
    assert await registry.record_action("u1", next_day) is True
    assert (await registry.get_profile("u1")).throttle.current_count == 1


@pytest.mark.asyncio
async def test_record_action_for_unknown_user_is_refused(store):
    assert await WatchRegistry(store, mode="dynamic").record_action("ghost") is False


@pytest.mark.asyncio
async def test_profiles_without_agent_settings_still_load(store):
    registry = WatchRegistry(store, mode="dynamic")
    profile = await registry.register_user("u1")
    raw = profile.to_dict()
    del raw["agent_cfg"]
    await store.set("users/profiles/u1", raw)

    loaded = await registry.get_profile("u1")

    assert loaded is not None
    assert loaded.agent_cfg is None


@pytest.mark.asyncio
async def test_set_agent_config_validates_and_keeps_last_post_time(store, clock):
    registry = WatchRegistry(store, mode="dynamic")

    with pytest.raises(ValueError):
        await registry.set_agent_config("u1", True, interval="5m", imitate="elonmusk")
    with pytest.raises(ValueError):
        await registry.set_agent_config("u1", True, interval="1h", imitate=" ")

    await registry.set_agent_config("u1", True, interval="1h", imitate="@elonmusk")
    assert (await registry.claim_agent_slot("u1")) is not None

    agent = await registry.set_agent_config("u1", True, interval="2h", imitate="cz_binance")

    assert (agent.interval, agent.imitate) == ("2h", "cz_binance")
    assert agent.last_post_at == clock.now


@pytest.mark.asyncio
async def test_claim_agent_slot_waits_for_interval(store):
    registry = WatchRegistry(store, mode="dynamic")
    await registry.set_agent_config("u1", True, interval="1h", imitate="elonmusk")
    start = _epoch(2024, 5, 1, 9, 0)

    first = await registry.claim_agent_slot("u1", start)
    assert first.last_post_at == start
    assert await registry.claim_agent_slot("u1", start + 3600) is None
    assert await registry.claim_agent_slot("u1", start + 3601) is not None


@pytest.mark.asyncio
async def test_claim_agent_slot_skips_disabled_and_unconfigured_users(store):
    registry = WatchRegistry(store, mode="dynamic")
    await registry.register_user("plain")
    await registry.set_agent_config("off", False, imitate="elonmusk")

    assert await registry.claim_agent_slot("plain") is None
    assert await registry.claim_agent_slot("off") is None
    assert await registry.claim_agent_slot("ghost") is None
