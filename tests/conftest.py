"""Shared fixtures for Signal Watcher tests."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import pytest
import pytest_asyncio

from crawlers import BaseSource, ContentItem
from database import init_engine, close_engine, create_tables
from llm import LLMClient, LLMResponse
from repositories import KeyStore
from utils.errors import PublishError


START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLLM(LLMClient):
    """Returns a canned response per identity, matched on '@identity' in the prompt."""

    def __init__(self, responses: Dict[str, str], failing: Optional[set] = None):
        super().__init__(api_key="test", model="fake")
        self.responses = responses
        self.failing = failing or set()
        self.prompts: List[str] = []

    def _content_for(self, prompt: str) -> str:
        for identity in self.failing:
            if f"@{identity} " in prompt:
                raise RuntimeError("model unavailable")
        for identity, content in self.responses.items():
            if f"@{identity} " in prompt:
                return content
        return "[]"

    def generate(self, prompt, system=None, max_tokens=4096, temperature=0.0):
        self.prompts.append(prompt)
        return LLMResponse(content=self._content_for(prompt), model="fake", usage={})

    def chat(self, messages, system=None, max_tokens=4096, temperature=0.0):
        return self.generate(messages[-1].content, system=system)


class FakeSource(BaseSource):
    """Serves prepared items per identity; identities in `failing` raise."""

    def __init__(self, items: Dict[str, List[ContentItem]], failing: Optional[set] = None):
        super().__init__("Fake")
        self.items = items
        self.failing = failing or set()
        self.calls: List[str] = []

    async def get_recent_content(self, identity, count):
        self.calls.append(identity)
        if identity in self.failing:
            raise RuntimeError("connection reset")
        for item in self.items.get(identity, [])[:count]:
            yield item


class FakeEnrichment:
    def __init__(self):
        self.calls: List[str] = []
        self.closed = False

    async def fetch_info(self, key: str) -> str:
        self.calls.append(key)
        return f"info for {key}"

    async def close(self) -> None:
        self.closed = True


class FakePublisher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.started = False
        self.payloads: List[str] = []
        self.closed = False

    async def start_node(self) -> None:
        self.started = True

    async def publish(self, report_json: str) -> None:
        self.payloads.append(report_json)
        if self.fail:
            raise PublishError("peer unreachable")

    async def close(self) -> None:
        self.closed = True


def make_item(
    identity: str,
    text: str,
    timestamp: Optional[float] = START_TIME - 60,
    author: Optional[str] = None,
    item_id: Optional[str] = None,
) -> ContentItem:
    """A content item posted by `author` (default: the identity itself)."""
    item = ContentItem(
        item_id=item_id or f"{identity}-{abs(hash(text)) % 10_000}",
        source=identity,
        author=author or identity,
        text=text,
        timestamp=datetime.fromtimestamp(timestamp, tz=timezone.utc) if timestamp is not None else None,
        likes=3,
        replies=1,
        reposts=2,
    )
    item.thread = [item]
    return item


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def store(tmp_path, clock):
    """KeyStore on a fresh SQLite file."""
    await close_engine()
    await init_engine(f"sqlite+aiosqlite:///{tmp_path / 'watcher.db'}")
    await create_tables()
    try:
        yield KeyStore(clock=clock)
    finally:
        await close_engine()
