"""
Agent Poster

Periodic per-user posts: for every user whose agent is enabled and due,
rewrite the latest signal in the chosen persona's voice and post it,
charged against the user's daily limit.
"""
import asyncio
from typing import Optional

from loguru import logger

from config import settings
from constants import PERSONA_STYLES
from llm import LLMClient, get_client
from prompts import get_prompt
from repositories import AgentConfig, MergedSignalRecord, SignalRepository, WatchRegistry
from utils.errors import InferenceError, MergeError
from .repost import ContentPoster


def report_text(record: MergedSignalRecord) -> str:
    return f"{record.key} is mentioned {record.count} times, {record.event}"


class AgentPoster:
    """
    Example:
        agent = AgentPoster(registry, signals, TwitterPoster())
        stats = await agent.run()
    """

    def __init__(
        self,
        registry: WatchRegistry,
        signals: SignalRepository,
        poster: ContentPoster,
        client: Optional[LLMClient] = None,
        timeout: Optional[float] = None,
    ):
        self.registry = registry
        self.signals = signals
        self.poster = poster
        self._client = client
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def latest_signal(self) -> Optional[MergedSignalRecord]:
        """Best record of the latest report (lowest category, first on ties)."""
        report = await self.signals.get_latest_report()
        if not isinstance(report, dict):
            return None

        best = None
        for raw in report.get("records") or []:
            try:
                record = MergedSignalRecord.from_dict(raw)
            except MergeError as e:
                logger.warning(f"[Agent] Skipping unreadable report record: {e}")
                continue
            if best is None or record.category < best.category:
                best = record
        return best

    def build_prompt(self, agent: AgentConfig, text: str) -> str:
        return get_prompt(
            "agent",
            imitate=agent.imitate,
            style=PERSONA_STYLES.get(agent.imitate, ""),
            text=text,
        )

    async def compose(self, agent: AgentConfig, text: str) -> str:
        """
        Raises:
            InferenceError: If the LLM call fails, times out or returns nothing
        """
        prompt = self.build_prompt(agent, text)
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self.client.generate, prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise InferenceError(f"agent post timed out after {self.timeout}s") from e
        except Exception as e:
            raise InferenceError(f"agent post: {e}") from e

        content = (response.content or "").strip()
        if not content:
            raise InferenceError("agent post: empty response")
        return content

    async def run(self, now: Optional[float] = None) -> dict:
        """
        Post for every due user.

        Per-user failures are logged and counted; they never stop the run.

        Returns:
            Counters: due, posted, throttled, failed
        """
        stats = {"due": 0, "posted": 0, "throttled": 0, "failed": 0}

        signal = await self.latest_signal()
        if signal is None:
            logger.info("[Agent] No signal to post, skipping this round")
            return stats
        text = report_text(signal)

        for profile in await self.registry.all_profiles():
            agent = await self.registry.claim_agent_slot(profile.user_id, now)
            if agent is None:
                continue
            stats["due"] += 1

            try:
                content = await self.compose(agent, text)
                if not await self.registry.record_action(profile.user_id, now):
                    stats["throttled"] += 1
                    continue
                post_id = await self.poster.post(content, profile)
            except Exception as e:
                stats["failed"] += 1
                logger.warning(f"[Agent] Post for '{profile.user_id}' failed: {e}")
                continue

            stats["posted"] += 1
            logger.info(f"[Agent] Posted {post_id} for '{profile.user_id}' as @{agent.imitate}")

        logger.info(
            f"[Agent] Due: {stats['due']} | Posted: {stats['posted']} | "
            f"Throttled: {stats['throttled']} | Failed: {stats['failed']}"
        )
        return stats
