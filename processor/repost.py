"""
Repost - publish content on behalf of a user

The handler charges one action against the user's daily limit before
posting through a ContentPoster.
"""
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from loguru import logger

from config import settings
from repositories import UserWatchProfile, WatchRegistry
from utils.errors import ThrottledError
from .commands import Repost


class ContentPoster(ABC):
    """Abstract base class for posting backends."""

    @abstractmethod
    async def post(self, text: str, profile: UserWatchProfile) -> str:
        """
        Publish text. Returns the id of the created post.
        """

    async def close(self) -> None:
        """Release any held connections."""


class TwitterPoster(ContentPoster):
    """Posts through the Twitter API v2 with the system account token."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = settings.TWITTER_POST_TOKEN if token is None else token
        self.base_url = (base_url or settings.TWITTER_API_BASE).rstrip("/")
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def post(self, text: str, profile: UserWatchProfile) -> str:
        response = await self._get_client().post(
            f"{self.base_url}/tweets",
            json={"text": text},
            headers={"Authorization": f"Bearer {self.token}"},
        )
        response.raise_for_status()
        return response.json()["data"]["id"]


class RepostHandler:
    """
    Example:
        handler = RepostHandler(registry, TwitterPoster())
        post_id = await handler.handle(Repost(user_id="u1", text="..."))
    """

    def __init__(self, registry: WatchRegistry, poster: ContentPoster):
        self.registry = registry
        self.poster = poster

    async def handle(self, command: Repost) -> str:
        """
        Raises:
            ValueError: If the text is empty
            ThrottledError: If the user's daily limit is reached
        """
        text = command.text.strip()
        if not text:
            raise ValueError("Repost text must not be empty")

        profile = await self.registry.register_user(command.user_id)
        if not await self.registry.record_action(command.user_id):
            raise ThrottledError(
                f"User '{command.user_id}' reached the daily limit of {profile.throttle.daily_limit}"
            )

        post_id = await self.poster.post(text, profile)
        logger.info(f"[Repost] Posted {post_id} for '{command.user_id}'")
        return post_id
