"""
Stored record schemas.

Every record persisted in the key store has an explicit dict schema.
`from_dict` validates what it reads and raises MergeError on any
mismatch, so a corrupt entry never leaks into the pipeline as a
half-valid object.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional

from constants import VALID_TIERS, DEFAULT_AGENT_INTERVAL, interval_seconds
from utils.errors import MergeError


def normalize_identity(identity: str) -> str:
    """Strip whitespace and a leading '@' from a source identity."""
    return identity.strip().lstrip("@").strip()


def _field(data: Any, name: str) -> Any:
    if not isinstance(data, dict):
        raise MergeError(f"Expected an object, got {type(data).__name__}")
    if name not in data:
        raise MergeError(f"Missing field '{name}'")
    return data[name]


def _str(data: dict, name: str, allow_empty: bool = True) -> str:
    value = _field(data, name)
    if not isinstance(value, str) or (not allow_empty and not value):
        raise MergeError(f"Invalid '{name}': {value!r}")
    return value


def _int(data: dict, name: str, minimum: Optional[int] = None) -> int:
    value = _field(data, name)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise MergeError(f"Invalid '{name}': {value!r}")
    if minimum is not None and value < minimum:
        raise MergeError(f"'{name}' below {minimum}: {value}")
    return value


def _tier(data: dict, name: str) -> int:
    value = _int(data, name)
    if value not in VALID_TIERS:
        raise MergeError(f"Invalid '{name}': {value} not in {VALID_TIERS}")
    return value


def _number(data: dict, name: str) -> float:
    value = _field(data, name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MergeError(f"Invalid '{name}': {value!r}")
    return float(value)


def _str_list(data: dict, name: str) -> List[str]:
    value = data.get(name, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MergeError(f"Invalid '{name}': {value!r}")
    return list(value)


# ============================================
# SIGNAL RECORDS
# ============================================

@dataclass
class MergedSignalRecord:
    """Persisted, cross-cycle aggregate for one subject key."""
    key: str
    category: int
    count: int
    event: str
    updated_at: float
    first_seen_at: float
    sources: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "category": self.category,
            "count": self.count,
            "event": self.event,
            "updated_at": self.updated_at,
            "first_seen_at": self.first_seen_at,
            "sources": sorted(self.sources),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MergedSignalRecord":
        return cls(
            key=_str(data, "key", allow_empty=False),
            category=_tier(data, "category"),
            count=_int(data, "count", minimum=0),
            event=_str(data, "event"),
            updated_at=_number(data, "updated_at"),
            first_seen_at=_number(data, "first_seen_at"),
            sources=_str_list(data, "sources"),
        )


@dataclass
class AlphaHighlight:
    """The single best record of a cycle, enriched for display."""
    key: str
    title: str
    updated_at: float
    text: str
    category: int
    count: int

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "title": self.title,
            "updated_at": self.updated_at,
            "text": self.text,
            "category": self.category,
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AlphaHighlight":
        return cls(
            key=_str(data, "key", allow_empty=False),
            title=_str(data, "title"),
            updated_at=_number(data, "updated_at"),
            text=_str(data, "text"),
            category=_tier(data, "category"),
            count=_int(data, "count", minimum=0),
        )


# ============================================
# WATCH REGISTRY RECORDS
# ============================================

@dataclass
class WatchedSource:
    """An external identity a user follows."""
    identity: str
    tier: int = 3
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"identity": self.identity, "tier": self.tier, "tags": list(self.tags)}

    @classmethod
    def from_dict(cls, data: Any) -> "WatchedSource":
        return cls(
            identity=_str(data, "identity", allow_empty=False),
            tier=_tier(data, "tier"),
            tags=_str_list(data, "tags"),
        )


@dataclass
class ThrottleState:
    """Per-user posting throttle."""
    daily_limit: int = 10
    current_count: int = 0
    last_action_at: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "daily_limit": self.daily_limit,
            "current_count": self.current_count,
            "last_action_at": self.last_action_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ThrottleState":
        last_action_at = data.get("last_action_at") if isinstance(data, dict) else None
        return cls(
            daily_limit=_int(data, "daily_limit", minimum=0),
            current_count=_int(data, "current_count", minimum=0),
            last_action_at=_number(data, "last_action_at") if last_action_at is not None else None,
        )


@dataclass
class AgentConfig:
    """Settings for a user's periodic agent posts."""
    enabled: bool = False
    interval: str = DEFAULT_AGENT_INTERVAL
    imitate: str = ""
    last_post_at: Optional[float] = None

    @property
    def interval_seconds(self) -> int:
        return interval_seconds(self.interval)

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "interval": self.interval,
            "imitate": self.imitate,
            "last_post_at": self.last_post_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AgentConfig":
        enabled = _field(data, "enabled")
        if not isinstance(enabled, bool):
            raise MergeError(f"Invalid 'enabled': {enabled!r}")
        last_post_at = data.get("last_post_at")
        return cls(
            enabled=enabled,
            interval=_str(data, "interval"),
            imitate=_str(data, "imitate"),
            last_post_at=_number(data, "last_post_at") if last_post_at is not None else None,
        )


@dataclass
class UserWatchProfile:
    """A registered user with their watch list, throttle state and agent settings."""
    user_id: str
    watch_list: List[WatchedSource] = field(default_factory=list)
    throttle: ThrottleState = field(default_factory=ThrottleState)
    created_at: Optional[float] = None
    agent_cfg: Optional[AgentConfig] = None

    def find(self, identity: str) -> Optional[WatchedSource]:
        identity = normalize_identity(identity)
        for source in self.watch_list:
            if source.identity == identity:
                return source
        return None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "watch_list": [source.to_dict() for source in self.watch_list],
            "throttle": self.throttle.to_dict(),
            "created_at": self.created_at,
            "agent_cfg": self.agent_cfg.to_dict() if self.agent_cfg else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "UserWatchProfile":
        watch_list = _field(data, "watch_list")
        if not isinstance(watch_list, list):
            raise MergeError(f"Invalid 'watch_list': {watch_list!r}")
        created_at = data.get("created_at")
        # Profiles written before agent settings existed have no agent_cfg
        agent_cfg = data.get("agent_cfg")
        return cls(
            user_id=_str(data, "user_id", allow_empty=False),
            watch_list=[WatchedSource.from_dict(item) for item in watch_list],
            throttle=ThrottleState.from_dict(_field(data, "throttle")),
            created_at=float(created_at) if isinstance(created_at, (int, float)) else None,
            agent_cfg=AgentConfig.from_dict(agent_cfg) if agent_cfg is not None else None,
        )
