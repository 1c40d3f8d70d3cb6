"""
RSS Source - recent posts from a per-identity RSS feed

Useful with feed mirrors of social accounts (the URL template receives
the identity). Entries carry no interaction counts.
"""
from datetime import timezone
from typing import AsyncIterator, Optional

import httpx
import feedparser
from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from loguru import logger

from config import settings
from .base_crawler import BaseSource, ContentItem


class RssSource(BaseSource):
    """Content source reading one RSS feed per identity."""

    def __init__(
        self,
        url_template: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__("RSS")
        self.url_template = url_template or settings.RSS_URL_TEMPLATE
        self.headers = {"User-Agent": "SignalWatcher/1.0"}
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS, follow_redirects=True
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def get_recent_content(self, identity: str, count: int) -> AsyncIterator[ContentItem]:
        url = self.url_template.format(identity=identity)
        response = await self._get_client().get(url, headers=self.headers)
        response.raise_for_status()

        feed = feedparser.parse(response.text)
        if feed.bozo and not feed.entries:
            raise ValueError(f"Unparseable feed at {url}")

        for entry in feed.entries[:count]:
            try:
                item = ContentItem(
                    item_id=entry.get("id") or entry.get("link", ""),
                    source=identity,
                    author=self._extract_author(entry, identity),
                    text=self._extract_content(entry),
                    timestamp=self._parse_date(entry.get("published") or entry.get("updated")),
                    url=entry.get("link", ""),
                )
            except (AttributeError, KeyError, TypeError) as e:
                logger.warning(f"[RSS] Failed to parse entry from {identity}: {e}")
                continue
            item.thread = [item]
            yield item

    def _extract_author(self, entry, identity: str) -> str:
        author = entry.get("author", "") or identity
        return author.strip().lstrip("@")

    def _extract_content(self, entry) -> str:
        """Extract plain text from an RSS entry."""
        content = ""
        if entry.get("content"):
            content = entry.content[0].value
        elif entry.get("summary"):
            content = entry.summary
        elif entry.get("title"):
            content = entry.title

        if content:
            soup = BeautifulSoup(content, "html.parser")
            content = soup.get_text(" ", strip=True)
        return content

    def _parse_date(self, date_str: Optional[str]):
        if not date_str:
            return None
        try:
            parsed = date_parser.parse(date_str)
        except (ValueError, OverflowError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
