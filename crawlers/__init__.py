"""Content sources for Signal Watcher."""

from typing import Optional

from config import settings
from constants import SourceBackend
from .base_crawler import BaseSource, ContentItem, FetchResult
from .twitter_crawler import TwitterSource
from .rss_crawler import RssSource
from .fetcher import SourceFetcher


def get_source(backend: Optional[str] = None) -> BaseSource:
    """Create the content source selected by SOURCE_BACKEND."""
    backend = SourceBackend(backend or settings.SOURCE_BACKEND)
    if backend == SourceBackend.RSS:
        return RssSource()
    return TwitterSource()


__all__ = [
    "BaseSource",
    "ContentItem",
    "FetchResult",
    "TwitterSource",
    "RssSource",
    "SourceFetcher",
    "get_source",
]
