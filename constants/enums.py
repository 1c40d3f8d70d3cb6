"""
Shared Enums

Application-wide enums used across multiple modules.
"""
from enum import Enum


class SourceMode(str, Enum):
    """Where the global fetch set comes from."""
    STATIC = "static"      # curated tiers from settings
    DYNAMIC = "dynamic"    # union of every user's watch list


class SourceBackend(str, Enum):
    """Content source implementation."""
    TWITTER = "twitter"
    RSS = "rss"


class CycleStatus(str, Enum):
    """Outcome of a scheduler cycle."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
