"""
Source and Signal Constants

Curated source tiers (static fetch mode), the default denylist of
well-known subjects, and the key namespaces used in the key store.
"""
from typing import List


# ============================================
# CURATED SOURCE TIERS
# ============================================
# Tier 1 is the highest priority. Identities are stored without the "@".

TIER_1_SOURCES: List[str] = [
    "jessepollak",
    "elonmusk",
    "cz_binance",
]

TIER_2_SOURCES: List[str] = [
    "aeyakovenko",
    "heyibinance",
    "CryptoHayes",
    "rajgokal",
]

TIER_3_SOURCES: List[str] = [
    "jayendra_jog",
    "therealchaseeb",
    "jacobvcreech",
    "gavofyork",
]

VALID_TIERS = (1, 2, 3)
LOWEST_PRIORITY_TIER = 3


# ============================================
# DENYLIST
# ============================================
# Well-known subjects that never get a first-time record.

TOP_TOKENS: List[str] = [
    "BTC",
    "ETH",
    "SOL",
    "BNB",
    "DOT",
]


# ============================================
# KEY STORE NAMESPACES
# ============================================

SIGNAL_RECORD_PREFIX = "signals/records/"
SIGNAL_REPORT_KEY = "signals/report"
SIGNAL_ALPHA_KEY = "signals/alpha"
ENRICHMENT_PREFIX = "enrichment/tokens/"
USER_PROFILE_PREFIX = "users/profiles/"
USER_IDS_KEY = "users/ids"
LAST_CYCLE_KEY_TEMPLATE = "watcher/{identity}/last_cycle"
LAST_RESULT_KEY_TEMPLATE = "watcher/{identity}/last_result"

