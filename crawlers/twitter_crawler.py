"""
Twitter Source - recent posts via the Twitter API v2

Resolves a username to its user id (cached per process), then reads the
user timeline with referenced tweets expanded so each item carries the
conversation it belongs to.
"""
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional

import httpx
from dateutil import parser as date_parser
from loguru import logger

from config import settings
from .base_crawler import BaseSource, ContentItem


TWEET_FIELDS = "created_at,public_metrics,conversation_id,author_id,referenced_tweets"
EXPANSIONS = "referenced_tweets.id,referenced_tweets.id.author_id,author_id"

# API limits for /users/:id/tweets
MIN_RESULTS = 5
MAX_RESULTS = 100


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an API timestamp into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class TwitterSource(BaseSource):
    """
    Content source backed by the Twitter API v2.

    Example:
        source = TwitterSource()
        async for item in source.get_recent_content("elonmusk", 20):
            print(item.text)
    """

    def __init__(
        self,
        bearer_token: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__("Twitter")
        self.base_url = (base_url or settings.TWITTER_API_BASE).rstrip("/")
        token = bearer_token if bearer_token is not None else settings.TWITTER_BEARER_TOKEN
        self.headers = {
            "Authorization": f"Bearer {token}",
            "User-Agent": "SignalWatcher/1.0",
        }
        self._client = client
        self._owns_client = client is None
        self._user_ids: Dict[str, str] = {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str, params: Optional[dict] = None) -> dict:
        response = await self._get_client().get(
            f"{self.base_url}{path}", headers=self.headers, params=params
        )
        response.raise_for_status()
        return response.json()

    async def resolve_user_id(self, username: str) -> str:
        """Look up the numeric user id for a username."""
        key = username.lower()
        if key in self._user_ids:
            return self._user_ids[key]

        payload = await self._get_json(f"/users/by/username/{username}")
        data = payload.get("data")
        if not data or "id" not in data:
            raise ValueError(f"Unknown user '{username}'")

        self._user_ids[key] = data["id"]
        return data["id"]

    async def get_recent_content(self, identity: str, count: int) -> AsyncIterator[ContentItem]:
        user_id = await self.resolve_user_id(identity)
        params = {
            "max_results": max(MIN_RESULTS, min(MAX_RESULTS, count)),
            "tweet.fields": TWEET_FIELDS,
            "expansions": EXPANSIONS,
            "user.fields": "username",
        }
        payload = await self._get_json(f"/users/{user_id}/tweets", params=params)

        includes = payload.get("includes", {})
        usernames = {user["id"]: user.get("username", "") for user in includes.get("users", [])}
        referenced = {
            tweet["id"]: self._to_item(tweet, identity, usernames)
            for tweet in includes.get("tweets", [])
        }

        tweets = payload.get("data", [])
        logger.debug(f"[Twitter] {identity}: {len(tweets)} tweets")

        for tweet in tweets[:count]:
            item = self._to_item(tweet, identity, usernames)
            item.thread = [item] + [
                referenced[ref["id"]]
                for ref in tweet.get("referenced_tweets", [])
                if ref.get("id") in referenced
            ]
            yield item

    def _to_item(self, tweet: dict, identity: str, usernames: Dict[str, str]) -> ContentItem:
        metrics = tweet.get("public_metrics", {})
        author = usernames.get(tweet.get("author_id", ""), identity)
        return ContentItem(
            item_id=tweet["id"],
            source=identity,
            author=author,
            text=tweet.get("text", ""),
            timestamp=parse_timestamp(tweet.get("created_at")),
            likes=metrics.get("like_count", 0),
            replies=metrics.get("reply_count", 0),
            reposts=metrics.get("retweet_count", 0),
            url=f"https://twitter.com/{author}/status/{tweet['id']}",
        )
