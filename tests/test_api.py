"""
HTTP layer tests. The lifespan is not entered; app.state is populated with
in-memory stand-ins for the store-backed services.
"""
import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from conftest import START_TIME
from constants import AGENT_INTERVALS
from processor import CommandQueue, Repost, TriggerCycle
from repositories import AgentConfig, MergedSignalRecord, Page, UserWatchProfile, WatchedSource
from utils.errors import InvalidCursorError


class StubReader:
    def __init__(self):
        self.calls = []
        self.report = None

    async def get_page(self, cursor=None, page_size=None, watchlist=None):
        self.calls.append((cursor, page_size, watchlist))
        if cursor == "bad":
            raise InvalidCursorError("Malformed cursor")
        record = MergedSignalRecord(
            key="WIF", category=1, count=3, event="listing",
            updated_at=START_TIME, first_seen_at=START_TIME, sources=["alice"],
        )
        return Page(items=[record], next_cursor="V0lG")

    async def get_latest_report(self):
        return self.report

    async def get_highlight(self):
        return None


class StubRegistry:
    def __init__(self):
        self.profiles = {}

    async def register_user(self, user_id):
        return self.profiles.setdefault(user_id, UserWatchProfile(user_id=user_id, created_at=START_TIME))

    async def get_profile(self, user_id):
        return self.profiles.get(user_id)

    async def add_watch(self, user_id, identity, tier=3, tags=None):
        profile = await self.register_user(user_id)
        if profile.find(identity):
            return False
        profile.watch_list.append(WatchedSource(identity=identity, tier=tier, tags=list(tags or [])))
        return True

    async def remove_watch(self, user_id, identity):
        profile = self.profiles.get(user_id)
        source = profile.find(identity) if profile else None
        if source is None:
            return False
        profile.watch_list.remove(source)
        return True

    async def is_watched(self, user_id, identity):
        profile = self.profiles.get(user_id)
        return bool(profile and profile.find(identity))

    async def set_agent_config(self, user_id, enabled, interval="24h", imitate=""):
        if interval not in AGENT_INTERVALS:
            raise ValueError(f"interval must be one of {sorted(AGENT_INTERVALS)}")
        profile = await self.register_user(user_id)
        profile.agent_cfg = AgentConfig(enabled=enabled, interval=interval, imitate=imitate)
        return profile.agent_cfg


class StubScheduler:
    async def status(self):
        return {"running": False, "cycle_in_progress": False}


class StubStore:
    def __init__(self):
        self.values = {}

    async def set(self, key, value, ttl=None):
        self.values[key] = value


@pytest.fixture
def app():
    app = create_app()
    app.state.reader = StubReader()
    app.state.registry = StubRegistry()
    app.state.commands = CommandQueue()
    app.state.scheduler = StubScheduler()
    app.state.store = StubStore()
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_watch_page_returns_items_and_next_cursor(app, client):
    response = client.post("/api/watch", json={"page_size": 1, "watchlist": ["alice"]})

    assert response.status_code == 200
    body = response.json()
    assert [item["key"] for item in body["items"]] == ["WIF"]
    assert body["nextCursor"] == "V0lG"
    assert app.state.reader.calls == [(None, 1, ["alice"])]


def test_watch_page_without_body(client):
    assert client.post("/api/watch").status_code == 200


def test_invalid_cursor_is_bad_request(client):
    response = client.post("/api/watch", json={"cursor": "bad"})

    assert response.status_code == 400


def test_report_defaults_to_empty_records(app, client):
    assert client.get("/api/report").json() == {"records": []}

    app.state.reader.report = {"run_id": "r1", "records": [{"key": "WIF"}]}
    assert client.get("/api/report").json()["run_id"] == "r1"


def test_alpha_is_null_without_highlight(client):
    response = client.get("/api/alpha")

    assert response.status_code == 200
    assert response.json() is None


def test_watchlist_lifecycle(client):
    assert client.get("/api/users/u1/watchlist").status_code == 404

    assert client.post("/api/users/u1").json()["user_id"] == "u1"
    assert client.post("/api/users/u1/watchlist", json={"identity": "alice", "tier": 1}).json() == {"added": True}
    assert client.post("/api/users/u1/watchlist", json={"identity": "alice"}).json() == {"added": False}
    assert client.get("/api/users/u1/watchlist/alice").json() == {"isWatched": True}

    watch_list = client.get("/api/users/u1/watchlist").json()["watchList"]
    assert [(s["identity"], s["tier"]) for s in watch_list] == [("alice", 1)]

    assert client.delete("/api/users/u1/watchlist/alice").json() == {"removed": True}
    assert client.delete("/api/users/u1/watchlist/alice").status_code == 404
    assert client.get("/api/users/u1/watchlist/alice").json() == {"isWatched": False}


def test_add_watch_rejects_out_of_range_tier(client):
    response = client.post("/api/users/u1/watchlist", json={"identity": "alice", "tier": 7})

    assert response.status_code == 422


def test_repost_and_cycle_run_are_queued(app, client):
    repost = client.post("/api/users/u1/repost", json={"text": "gm"})
    cycle = client.post("/api/cycle/run")

    assert repost.status_code == 202
    assert cycle.status_code == 202
    assert cycle.json() == {"queued": True}

    queue = app.state.commands._queue
    assert queue.get_nowait() == Repost(user_id="u1", text="gm")
    assert queue.get_nowait() == TriggerCycle()


def test_cycle_status(client):
    assert client.get("/api/cycle/status").json() == {"running": False, "cycle_in_progress": False}


def test_peer_report_is_stored(app, client):
    response = client.post("/api/consensus/report", json={"run_id": "peer-1", "records": []})

    assert response.json() == {"accepted": True}
    assert app.state.store.values["consensus/peer_report"]["run_id"] == "peer-1"


def test_set_agent_config(app, client):
    response = client.put("/api/users/u1/agent", json={"enabled": True, "interval": "2h", "imitate": "cz_binance"})

    assert response.status_code == 200
    assert response.json() == {"enabled": True, "interval": "2h", "imitate": "cz_binance", "last_post_at": None}
    assert app.state.registry.profiles["u1"].agent_cfg.interval == "2h"


def test_set_agent_config_rejects_unknown_interval(client):
    response = client.put("/api/users/u1/agent", json={"enabled": True, "interval": "5m", "imitate": "cz_binance"})

    assert response.status_code == 400
