"""
Inference Adapter

Turns one identity's fetched items into candidate signals through the
LLM. The client is synchronous, so calls run in a worker thread and are
bounded by a timeout.
"""
import asyncio
from typing import List, Optional

from loguru import logger

from config import settings
from crawlers import ContentItem, FetchResult
from llm import LLMClient, get_client
from prompts import get_prompt
from utils.errors import InferenceError
from .models import CandidateSignal
from .output_parser import parse_candidates


def format_posts(items: List[ContentItem]) -> str:
    lines = []
    for item in items:
        when = item.timestamp.strftime("%Y-%m-%d %H:%M") if item.timestamp else "unknown"
        lines.append(
            f"- [{when}] @{item.author}: {item.text} "
            f"(likes {item.likes}, replies {item.replies}, reposts {item.reposts})"
        )
        for related in item.thread:
            if related is item:
                continue
            lines.append(f"  > @{related.author}: {related.text}")
    return "\n".join(lines)


class InferenceAdapter:
    """
    Example:
        adapter = InferenceAdapter()
        candidates = await adapter.extract(fetch_result)
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        timeout: Optional[float] = None,
        denylist: Optional[List[str]] = None,
    ):
        self._client = client
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self.denylist = settings.SIGNAL_DENYLIST if denylist is None else denylist

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = get_client()
        return self._client

    def build_prompt(self, result: FetchResult) -> str:
        return get_prompt(
            "watcher",
            identity=result.identity,
            tier=result.tier,
            posts=format_posts(result.items),
            denylist=", ".join(self.denylist) or "none",
        )

    async def infer(self, result: FetchResult) -> str:
        """
        Run the LLM over one identity's items.

        Raises:
            InferenceError: If the call fails or times out
        """
        prompt = self.build_prompt(result)
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self.client.generate, prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise InferenceError(f"{result.identity}: timed out after {self.timeout}s") from e
        except Exception as e:
            raise InferenceError(f"{result.identity}: {e}") from e

        logger.debug(
            f"[Inference] {result.identity}: {response.total_tokens} tokens, "
            f"{response.latency_ms or 0}ms"
        )
        return response.content

    async def extract(self, result: FetchResult) -> List[CandidateSignal]:
        """
        Infer and parse candidates for one identity.

        Raises:
            InferenceError: If the LLM call fails
            ParseError: If the output cannot be decoded
        """
        if not result.items:
            return []
        text = await self.infer(result)
        return parse_candidates(text, default_category=result.tier)
