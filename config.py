"""
Signal Watcher - Configuration
"""
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings
from pydantic import Field

from constants import TIER_1_SOURCES, TIER_2_SOURCES, TIER_3_SOURCES, TOP_TOKENS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Paths
    BASE_DIR: Path = Path(__file__).parent
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).parent / "data")
    DATABASE_PATH: Path = Field(default_factory=lambda: Path(__file__).parent / "data" / "watcher.db")
    LOG_DIR: Path = Field(default_factory=lambda: Path(__file__).parent / "data" / "logs")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # LLM
    LLM_PROVIDER: str = Field(default="openai")
    LLM_API_KEY: str = Field(default="", description="API key for the OpenAI-compatible endpoint")
    LLM_BASE_URL: str = Field(default="", description="Override base URL (empty = provider default)")
    LLM_MODEL: str = Field(default="")
    LLM_TIMEOUT_SECONDS: float = Field(default=120.0)
    LLM_VERIFY_SSL: bool = Field(default=True)

    # Sources
    SOURCE_MODE: str = Field(default="static", description="'static' curated tiers or 'dynamic' user watch lists")
    SOURCE_BACKEND: str = Field(default="twitter", description="'twitter' API v2 or 'rss' feeds")
    SOURCE_TIER_1: List[str] = Field(default_factory=lambda: list(TIER_1_SOURCES))
    SOURCE_TIER_2: List[str] = Field(default_factory=lambda: list(TIER_2_SOURCES))
    SOURCE_TIER_3: List[str] = Field(default_factory=lambda: list(TIER_3_SOURCES))
    TWITTER_USERNAME: str = Field(default="", description="The system's own account, used for echo suppression")
    TWITTER_BEARER_TOKEN: str = Field(default="")
    TWITTER_API_BASE: str = Field(default="https://api.twitter.com/2")
    RSS_URL_TEMPLATE: str = Field(default="https://nitter.net/{identity}/rss")

    # Cycle
    CYCLE_DELAY_SECONDS: int = Field(default=2 * 60 * 60)
    FIRST_RUN_DELAY_SECONDS: int = Field(default=60)
    FETCH_COUNT_PER_SOURCE: int = Field(default=20)
    FETCH_WINDOW_SECONDS: int = Field(default=26 * 60 * 60)
    FETCH_CONCURRENCY: int = Field(default=4)
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = Field(default=60.0)

    # Merge
    SIGNAL_DENYLIST: List[str] = Field(default_factory=lambda: list(TOP_TOKENS))
    SIGNAL_RECORD_TTL_SECONDS: int = Field(default=3 * 24 * 60 * 60, description="0 disables expiry")

    # Enrichment
    BIRDEYE_API_KEY: str = Field(default="")
    BIRDEYE_API_BASE: str = Field(default="https://public-api.birdeye.so")
    ENRICHMENT_CACHE_TTL_SECONDS: int = Field(default=5 * 60)

    # Consensus
    CONSENSUS_PEERS: List[str] = Field(default_factory=list)

    # Posting
    TWITTER_POST_TOKEN: str = Field(default="")

    # Agent posts
    AGENT_ENABLED: bool = Field(default=True, description="Run the per-user agent posting job")
    AGENT_CHECK_INTERVAL_SECONDS: int = Field(default=60 * 60, description="How often agent schedules are checked")

    # Reader
    WATCH_PAGE_SIZE: int = Field(default=20)
    WATCH_PAGE_SIZE_MAX: int = Field(default=100)

    # API
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    SCHEDULER_ENABLED: bool = Field(default=True, description="Run the watch cycle inside the API process")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def ensure_directories():
    """Ensure all required directories exist."""
    dirs = [
        settings.DATA_DIR,
        settings.LOG_DIR,
        settings.DATABASE_PATH.parent,
    ]
    for dir_path in dirs:
        dir_path.mkdir(parents=True, exist_ok=True)
