"""
Constants package for Signal Watcher.

Contains shared enums, curated source tiers, agent personas and key
namespaces.
"""

from .enums import SourceMode, SourceBackend, CycleStatus
from .sources import (
    TIER_1_SOURCES,
    TIER_2_SOURCES,
    TIER_3_SOURCES,
    VALID_TIERS,
    LOWEST_PRIORITY_TIER,
    TOP_TOKENS,
    SIGNAL_RECORD_PREFIX,
    SIGNAL_REPORT_KEY,
    SIGNAL_ALPHA_KEY,
    ENRICHMENT_PREFIX,
    USER_PROFILE_PREFIX,
    USER_IDS_KEY,
    LAST_CYCLE_KEY_TEMPLATE,
    LAST_RESULT_KEY_TEMPLATE,
)
from .personas import AGENT_INTERVALS, DEFAULT_AGENT_INTERVAL, PERSONA_STYLES, interval_seconds

__all__ = [
    # Enums
    "SourceMode",
    "SourceBackend",
    "CycleStatus",
    # Sources
    "TIER_1_SOURCES",
    "TIER_2_SOURCES",
    "TIER_3_SOURCES",
    "VALID_TIERS",
    "LOWEST_PRIORITY_TIER",
    "TOP_TOKENS",
    # Agent
    "AGENT_INTERVALS",
    "DEFAULT_AGENT_INTERVAL",
    "PERSONA_STYLES",
    "interval_seconds",
    # Key namespaces
    "SIGNAL_RECORD_PREFIX",
    "SIGNAL_REPORT_KEY",
    "SIGNAL_ALPHA_KEY",
    "ENRICHMENT_PREFIX",
    "USER_PROFILE_PREFIX",
    "USER_IDS_KEY",
    "LAST_CYCLE_KEY_TEMPLATE",
    "LAST_RESULT_KEY_TEMPLATE",
]
