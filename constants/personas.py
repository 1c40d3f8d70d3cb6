"""
Agent posting personas and intervals.

A user's agent rewrites the latest signal in the voice of one of these
personas. Unknown persona names are accepted and get no style text.
"""
from typing import Dict


AGENT_INTERVALS: Dict[str, int] = {
    "1h": 1 * 60 * 60,
    "2h": 2 * 60 * 60,
    "3h": 3 * 60 * 60,
    "12h": 12 * 60 * 60,
    "24h": 24 * 60 * 60,
}

DEFAULT_AGENT_INTERVAL = "24h"

PERSONA_STYLES: Dict[str, str] = {
    "elonmusk": (
        "Elon Musk is known for an innovative and adventurous spirit, with a strong drive to push boundaries. "
        "His posts are direct and full of personality, often short, humorous and at times provocative."
    ),
    "cz_binance": (
        "CZ is a pragmatic and calm entrepreneur, skilled in handling complex market issues. "
        "His posts are concise and informative, focused on crypto news, exchange updates and industry trends."
    ),
    "aeyakovenko": (
        "Anatoly Yakovenko is a highly focused founder who pays close attention to technical details. "
        "His posts are technical, discussing where blockchain technology is heading and the challenges ahead."
    ),
    "jessepollak": (
        "Jesse Pollak has a strong passion for technology and community, with an eye for developer and user experience. "
        "His posts are concise, easy to understand and personal."
    ),
    "shawmakesmagic": (
        "Shaw is a creative builder who enjoys exploring cutting-edge projects. "
        "His posts share inventive uses of blockchain and touch on magic, fantasy and imagination."
    ),
    "everythingempt": (
        "Everythingempt is open, conscientious, extraverted and agreeable. "
        "Posts are minimalist and selective."
    ),
}


def interval_seconds(interval: str) -> int:
    """Seconds for an interval name; unknown names fall back to 24h."""
    return AGENT_INTERVALS.get(interval, AGENT_INTERVALS[DEFAULT_AGENT_INTERVAL])
