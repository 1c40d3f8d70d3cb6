"""
Consensus Publisher

Broadcasts each cycle report to cooperating replicas. Delivery is best
effort: every peer is attempted, and a failure on any of them is raised
as a single PublishError afterwards.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from loguru import logger

from config import settings
from utils.errors import PublishError


REPORT_PATH = "/api/consensus/report"


class ConsensusPublisher(ABC):
    """Abstract base class for report broadcasters."""

    @abstractmethod
    async def start_node(self) -> None:
        """Join the replica group."""

    @abstractmethod
    async def publish(self, report_json: str) -> None:
        """
        Broadcast one serialized report.

        Raises:
            PublishError: If delivery failed
        """

    async def close(self) -> None:
        """Release any held connections."""


class LoggingConsensusPublisher(ConsensusPublisher):
    """Publisher for single-node deployments: reports are only logged."""

    async def start_node(self) -> None:
        logger.info("[Consensus] No peers configured, running standalone")

    async def publish(self, report_json: str) -> None:
        logger.info(f"[Consensus] Report ready ({len(report_json)} bytes), no peers to notify")


class HttpConsensusPublisher(ConsensusPublisher):
    """POSTs reports to each peer's report endpoint."""

    def __init__(
        self,
        peers: List[str],
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.peers = [peer.rstrip("/") for peer in peers]
        self.timeout = timeout or settings.EXTERNAL_CALL_TIMEOUT_SECONDS
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def start_node(self) -> None:
        logger.info(f"[Consensus] Publishing to {len(self.peers)} peers: {', '.join(self.peers)}")

    async def publish(self, report_json: str) -> None:
        failures = []
        for peer in self.peers:
            try:
                response = await self._get_client().post(
                    f"{peer}{REPORT_PATH}",
                    content=report_json,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(f"[Consensus] Peer {peer} rejected report: {e}")
                failures.append(peer)

        if failures:
            raise PublishError(f"{len(failures)}/{len(self.peers)} peers failed: {', '.join(failures)}")
        logger.info(f"[Consensus] Report delivered to {len(self.peers)} peers")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
