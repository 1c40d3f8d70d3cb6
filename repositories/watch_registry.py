"""
Watch Registry

Per-user watch lists, posting throttle and agent settings, persisted in
the key store.
Also decides which identities the fetch cycle reads from.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from loguru import logger

from config import settings
from constants import (
    SourceMode,
    USER_PROFILE_PREFIX,
    USER_IDS_KEY,
    VALID_TIERS,
    LOWEST_PRIORITY_TIER,
    AGENT_INTERVALS,
    DEFAULT_AGENT_INTERVAL,
)
from utils.errors import MergeError
from .key_store import KeyStore
from .models import AgentConfig, UserWatchProfile, WatchedSource, normalize_identity


def _profile_key(user_id: str) -> str:
    return f"{USER_PROFILE_PREFIX}{user_id}"


def _utc_day(timestamp: float):
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()


class WatchRegistry:
    """
    Repository for user watch profiles.

    Example:
        registry = WatchRegistry(store)
        await registry.add_watch("u1", "@elonmusk", tier=1)
        tiers = await registry.get_fetch_tiers()
    """

    def __init__(
        self,
        store: KeyStore,
        mode: Optional[str] = None,
        static_tiers: Optional[Dict[int, List[str]]] = None,
    ):
        self.store = store
        self.mode = SourceMode(mode or settings.SOURCE_MODE)
        if static_tiers is None:
            static_tiers = {
                1: settings.SOURCE_TIER_1,
                2: settings.SOURCE_TIER_2,
                3: settings.SOURCE_TIER_3,
            }
        self.static_tiers = static_tiers

    # ============================================
    # PROFILES
    # ============================================

    async def get_profile(self, user_id: str) -> Optional[UserWatchProfile]:
        """Get a profile, or None if unknown or unreadable."""
        try:
            raw = await self.store.get(_profile_key(user_id))
            if raw is None:
                return None
            return UserWatchProfile.from_dict(raw)
        except MergeError as e:
            logger.warning(f"[Registry] Unreadable profile '{user_id}': {e}")
            return None

    async def save_profile(self, profile: UserWatchProfile) -> None:
        await self.store.set(_profile_key(profile.user_id), profile.to_dict())
        await self._index_user(profile.user_id)

    async def register_user(self, user_id: str) -> UserWatchProfile:
        """Create a default profile if the user is unknown. Idempotent."""
        profile = await self.get_profile(user_id)
        if profile is not None:
            return profile

        profile = UserWatchProfile(user_id=user_id, created_at=self.store.now())
        await self.save_profile(profile)
        logger.info(f"[Registry] Registered user '{user_id}'")
        return profile

    async def _index_user(self, user_id: str) -> None:
        def add_id(ids):
            ids = list(ids or [])
            if user_id in ids:
                return None
            ids.append(user_id)
            return ids

        await self.store.update(USER_IDS_KEY, add_id, ignore_corrupt=True)

    async def all_profiles(self) -> List[UserWatchProfile]:
        ids = await self.store.get(USER_IDS_KEY) or []
        profiles = []
        for user_id in ids:
            profile = await self.get_profile(user_id)
            if profile is not None:
                profiles.append(profile)
        return profiles

    # ============================================
    # WATCH LIST
    # ============================================

    async def add_watch(
        self,
        user_id: str,
        identity: str,
        tier: int = LOWEST_PRIORITY_TIER,
        tags: Optional[List[str]] = None,
    ) -> bool:
        """
        Add an identity to a user's watch list.

        Returns:
            False if the identity was already watched
        """
        identity = normalize_identity(identity)
        if not identity:
            raise ValueError("identity must not be empty")
        if tier not in VALID_TIERS:
            raise ValueError(f"tier must be one of {VALID_TIERS}")

        await self.register_user(user_id)

        def add(raw):
            profile = UserWatchProfile.from_dict(raw) if raw else UserWatchProfile(user_id=user_id)
            if profile.find(identity) is not None:
                return None
            profile.watch_list.append(WatchedSource(identity=identity, tier=tier, tags=list(tags or [])))
            return profile.to_dict()

        written = await self.store.update(_profile_key(user_id), add)
        return written is not None

    async def remove_watch(self, user_id: str, identity: str) -> bool:
        """Remove an identity. Returns False if it was not watched."""
        identity = normalize_identity(identity)

        def remove(raw):
            if raw is None:
                return None
            profile = UserWatchProfile.from_dict(raw)
            source = profile.find(identity)
            if source is None:
                return None
            profile.watch_list.remove(source)
            return profile.to_dict()

        written = await self.store.update(_profile_key(user_id), remove)
        return written is not None

    async def list_watches(self, user_id: str) -> List[WatchedSource]:
        profile = await self.get_profile(user_id)
        return list(profile.watch_list) if profile else []

    async def is_watched(self, user_id: str, identity: str) -> bool:
        profile = await self.get_profile(user_id)
        if profile is None:
            return False
        return profile.find(identity) is not None

    async def get_all_watch_list(self) -> Set[str]:
        """Union of every user's watched identities."""
        identities = set()
        for profile in await self.all_profiles():
            identities.update(source.identity for source in profile.watch_list)
        return identities

    # ============================================
    # FETCH SET
    # ============================================

    async def get_fetch_tiers(self) -> Dict[int, List[str]]:
        """
        Identities to fetch this cycle, grouped by tier.

        Static mode returns the curated tiers. Dynamic mode groups the union
        of all watch lists by the best tier any user assigned.
        """
        if self.mode == SourceMode.STATIC:
            tiers = {}
            for tier, identities in sorted(self.static_tiers.items()):
                normalized = [normalize_identity(i) for i in identities]
                tiers[tier] = [i for i in normalized if i]
            return tiers

        best: Dict[str, int] = {}
        for profile in await self.all_profiles():
            for source in profile.watch_list:
                current = best.get(source.identity)
                if current is None or source.tier < current:
                    best[source.identity] = source.tier

        tiers: Dict[int, List[str]] = {}
        for identity in sorted(best):
            tiers.setdefault(best[identity], []).append(identity)
        return dict(sorted(tiers.items()))

    # ============================================
    # THROTTLE
    # ============================================

    async def record_action(self, user_id: str, now: Optional[float] = None) -> bool:
        """
        Count one posting action against the user's daily limit.

        The count resets when the UTC day changed since the last action.

        Returns:
            False if the user is unknown or the limit is reached
        """
        now = self.store.now() if now is None else now

        def consume(raw):
            if raw is None:
                return None
            profile = UserWatchProfile.from_dict(raw)
            throttle = profile.throttle
            if throttle.last_action_at is not None and _utc_day(throttle.last_action_at) != _utc_day(now):
                throttle.current_count = 0
            if throttle.current_count >= throttle.daily_limit:
                return None
            throttle.current_count += 1
            throttle.last_action_at = now
            return profile.to_dict()

        written = await self.store.update(_profile_key(user_id), consume)
        if written is None:
            logger.info(f"[Registry] Action refused for '{user_id}'")
            return False
        return True

    # ============================================
    # AGENT
    # ============================================

    async def set_agent_config(
        self,
        user_id: str,
        enabled: bool,
        interval: str = DEFAULT_AGENT_INTERVAL,
        imitate: str = "",
    ) -> AgentConfig:
        """
        Replace a user's agent settings, keeping the last post time.

        Raises:
            ValueError: If the interval is unknown, or the agent is enabled
                without a persona to imitate
        """
        if interval not in AGENT_INTERVALS:
            raise ValueError(f"interval must be one of {sorted(AGENT_INTERVALS)}")
        imitate = normalize_identity(imitate)
        if enabled and not imitate:
            raise ValueError("imitate must not be empty when the agent is enabled")

        await self.register_user(user_id)

        def configure(raw):
            profile = UserWatchProfile.from_dict(raw) if raw else UserWatchProfile(user_id=user_id)
            last_post_at = profile.agent_cfg.last_post_at if profile.agent_cfg else None
            profile.agent_cfg = AgentConfig(
                enabled=enabled, interval=interval, imitate=imitate, last_post_at=last_post_at
            )
            return profile.to_dict()

        written = await self.store.update(_profile_key(user_id), configure)
        return UserWatchProfile.from_dict(written).agent_cfg

    async def claim_agent_slot(self, user_id: str, now: Optional[float] = None) -> Optional[AgentConfig]:
        """
        Reserve the user's next agent post if their interval has elapsed.

        The last post time is written before the post is attempted, so a
        failed post waits a full interval like a successful one.

        Returns:
            The agent settings to post with, or None if not due
        """
        now = self.store.now() if now is None else now

        def claim(raw):
            if raw is None:
                return None
            profile = UserWatchProfile.from_dict(raw)
            agent = profile.agent_cfg
            if agent is None or not agent.enabled or not agent.imitate:
                return None
            if agent.last_post_at is not None and now - agent.last_post_at <= agent.interval_seconds:
                return None
            agent.last_post_at = now
            return profile.to_dict()

        try:
            written = await self.store.update(_profile_key(user_id), claim)
        except MergeError as e:
            logger.warning(f"[Registry] Unreadable profile '{user_id}': {e}")
            return None
        if written is None:
            return None
        return UserWatchProfile.from_dict(written).agent_cfg
