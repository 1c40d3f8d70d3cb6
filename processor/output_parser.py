"""
Output Parser - Parse inference output into candidate signals
"""
import json
import re
from typing import Any, List, Optional

from loguru import logger

from constants import VALID_TIERS
from utils.errors import ParseError
from .models import CandidateSignal, normalize_key


# Keys under which a wrapping object may hold the candidate list
LIST_KEYS = ("tokens", "signals", "items")

KEY_FIELDS = ("token", "key")


def _strip_fences(text: str) -> str:
    text = text.replace("```", "")
    # Language tag left behind by the opening fence
    return re.sub(r'^\s*json\b', '', text, count=1, flags=re.IGNORECASE).strip()


def _extract_array(text: str) -> Optional[str]:
    """Outermost [...] block, if any."""
    match = re.search(r'\[[\s\S]*\]', text)
    return match.group(0) if match else None


def _decode(text: str) -> Any:
    cleaned = _strip_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    block = _extract_array(cleaned)
    if block is None:
        raise ParseError("Could not extract JSON from inference output")
    try:
        return json.loads(block)
    except json.JSONDecodeError as e:
        raise ParseError(f"JSON parse error: {e}") from e


def _as_list(data: Any) -> List[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for name in LIST_KEYS:
            if isinstance(data.get(name), list):
                return data[name]
        return [data]
    raise ParseError(f"Unexpected output shape: {type(data).__name__}")


def _category(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        category = int(value)
    except (TypeError, ValueError):
        return default
    return category if category in VALID_TIERS else default


def _count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 1
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 1


def parse_candidates(text: str, default_category: int) -> List[CandidateSignal]:
    """
    Parse inference output into candidate signals.

    Accepts a JSON array, a single object, or an object holding the array
    under one of LIST_KEYS, optionally wrapped in markdown code fences.

    Args:
        text: Raw inference output
        default_category: Category used when an element has none (the source tier)

    Raises:
        ParseError: If no candidate list can be decoded
    """
    if not text or not text.strip():
        raise ParseError("Empty inference output")

    elements = _as_list(_decode(text))

    candidates = []
    for index, element in enumerate(elements):
        if not isinstance(element, dict):
            logger.warning(f"[Parser] Skipping element {index}: not an object")
            continue

        raw_key = next((element[name] for name in KEY_FIELDS if element.get(name)), None)
        if not isinstance(raw_key, str) or not normalize_key(raw_key):
            logger.warning(f"[Parser] Skipping element {index}: no usable key")
            continue

        event = element.get("event")
        candidates.append(CandidateSignal(
            key=normalize_key(raw_key),
            category=_category(element.get("category"), default_category),
            count=_count(element.get("count")),
            event=event if isinstance(event, str) else ("" if event is None else str(event)),
        ))

    return candidates
