"""Report broadcasting to cooperating replicas."""
from typing import List, Optional

from config import settings
from .publisher import (
    ConsensusPublisher,
    HttpConsensusPublisher,
    LoggingConsensusPublisher,
    REPORT_PATH,
)


def get_publisher(peers: Optional[List[str]] = None) -> ConsensusPublisher:
    """HTTP publisher when peers are configured, logging publisher otherwise."""
    peers = settings.CONSENSUS_PEERS if peers is None else peers
    if peers:
        return HttpConsensusPublisher(peers)
    return LoggingConsensusPublisher()


__all__ = [
    "ConsensusPublisher",
    "HttpConsensusPublisher",
    "LoggingConsensusPublisher",
    "REPORT_PATH",
    "get_publisher",
]
