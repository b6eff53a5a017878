from __future__ import annotations

from peakconditions.parsing.normalizer import clean_text
from peakconditions.schemas.status import StatusCode

RESTRICTED_KEYWORDS = (
    "restricted",
    "limited access",
    "permit required",
    "special restrictions",
    "lane closure",
    "construction",
    "accident",
    "incident",
    "delay",
)
CHAINS_KEYWORDS = (
    "chains required",
    "chains are required",
    "chain control",
    "snow chains",
)
CLOSED_PHRASES = (
    "road closed",
    "fully closed",
    "temporarily closed",
    "permanently closed",
    "full closure",
    # Partial closures ("lane closure", "construction") already matched as restricted
    "closed",
)
OPEN_KEYWORDS = ("open", "accessible", "available")


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def infer_status_from_text(raw_text: str) -> StatusCode:
    """Map page text to a status code.

    Rules are checked in a fixed order and the first match wins:
    restricted, chains required, closed, open, unknown.
    """
    text = clean_text(raw_text).lower()
    if not text:
        return "unknown"
    if _contains_any(text, RESTRICTED_KEYWORDS):
        return "restricted"
    if _contains_any(text, CHAINS_KEYWORDS):
        return "chains_required"
    if _contains_any(text, CLOSED_PHRASES):
        return "closed"
    if _contains_any(text, OPEN_KEYWORDS):
        return "open"
    return "unknown"
