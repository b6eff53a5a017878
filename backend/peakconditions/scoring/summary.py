"""Short human-readable summaries of scraped status pages.

Blocks are scored by keyword priority with penalties for known low-value
content (feature articles, navigation chrome, map widgets), and the best few
are joined and truncated to the configured length.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from peakconditions.config.settings import ClassifierSettings, settings
from peakconditions.parsing.normalizer import (
    FEATURED_CONTENT_RE,
    NO_FEATURED_ALERTS_RE,
    ORG_NAME_RE,
    alpha_ratio,
    collapse_whitespace,
    is_org_name_list,
    normalize_page,
    split_camel_joins,
    split_sentences,
)

NO_CONTENT = "No content available."
UNPARSEABLE = "Content available but could not be parsed. Please check source for details."
NO_ACTIVE_ALERTS = (
    "No active alerts are listed on the source page. Please check the source for current conditions."
)
PAGE_NOT_FOUND = (
    "Source page not found (404). The URL may have changed or the page may be temporarily unavailable."
)
ELLIPSIS = "..."

MAX_SELECTED_BLOCKS = 3

REAL_ALERT_RE = re.compile(
    r"fire\s+restrictions?\s+for|\b[A-Z][a-z]{3,}\s+Fire\b|\bclosure\s+order\b|\bevacuation\b"
)
ERROR_PAGE_RE = re.compile(
    r"\b404\b|page\s+not\s+found|page\s+(?:cannot|could\s+not)\s+be\s+found|no\s+longer\s+available",
    re.IGNORECASE,
)
ERROR_PAGE_MAX_LENGTH = 200

FEATURED_ARTICLE_KEYWORDS = (
    "featured news",
    "featured stories",
    "featured story",
    "press release",
    "news release",
    "read more",
    "view all features",
)
ORG_LEAD_RE = re.compile(r"^[A-Z][a-z]+ National Forest")
UI_CHROME_KEYWORDS = ("traffic scale", "traffic cone", "pending lcs")
ROAD_BONUS_KEYWORDS = ("lane closure", "full closure", "chain control")
TRAFFIC_FLOW_RE = re.compile(r"\b(?:slow|fast|delay)", re.IGNORECASE)
INCIDENT_KEYWORDS = ("construction", "accident", "incident")

NAVIGATION_RE = re.compile(
    r"\b(?:home|menu|search|sign\s+in|log\s+in|contact\s+us|site\s+map|about\s+us|"
    r"visit\s+quickmap|call\s+1-800)\b",
    re.IGNORECASE,
)
FALLBACK_NOISE_RE = re.compile(
    r"skip\s+to|\.gov\b|padlock|\bsign\s+in\b|\blog\s+in\b|\bmenu\b|visit\s+quickmap|call\s+1-800",
    re.IGNORECASE,
)
STATUS_INFO_RE = re.compile(
    r"\b(?:closed|closure|open|chains?|restrict\w*|delay|construction|accident|incident|alert|danger)\b",
    re.IGNORECASE,
)

CLICK_THROUGH_RE = re.compile(r"\b(?:click\s+here|learn\s+more)\b", re.IGNORECASE)
REPEATED_COLON_RE = re.compile(r":{2,}")
SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,;:!?])")
REPEATED_PERIOD_RE = re.compile(r"\.(?:\s*\.)+")
TRAILING_ELLIPSIS_RE = re.compile(r"(?:\.{3}|…)\s*$")
SENTENCE_END_RE = re.compile(r"[.!?]$")
SUMMARY_NOISE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bopen\s+quickmap\b",
        r"\bview\s+(?:on\s+)?quickmap\b",
        r"\bzoom\s+(?:in|out)\b",
        r"\btoggle\s+(?:layers?|legend)\b",
        r"\bshare\s+this\s+page\b",
    )
]

FIRE_DANGER_RE = re.compile(
    r"\s*Fire\s+Danger\s+Status:\s*([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*?)(?:\s+" + ORG_NAME_RE.pattern + r")?\s*$"
)
DANGER_LABEL_TRAILER_RE = re.compile(r"\s*Fire\s+Danger:?\s*$")
ALERTS_RE = re.compile(r"Alerts:\s*([^.]*)")
VIEW_ALL_ALERTS_RE = re.compile(r"\bview\s+all\s+alerts\b", re.IGNORECASE)
FIRE_RESTRICTION_RE = re.compile(
    r"Fire\s+Restrictions?\s+for\s+((?:the\s+)?[A-Z][A-Za-z]*(?:\s+[A-Z][A-Za-z]*)*?)"
    r"(?=\s+Fire\s+Restrictions?\b|\s+[A-Z][a-z]+\s+Fire\b|\s*$)"
)
NAMED_FIRE_RE = re.compile(r"\b([A-Z][a-z]{3,}\s+Fire)\b(?!\s+(?:Restrictions?|Danger)\b)")
ORG_TRAILER_RE = re.compile(r"\s+(" + ORG_NAME_RE.pattern + r")\s*$")

MAP_LABEL_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"full\s+closure",
        r"lane\s+closures?",
        r"road\s+closed",
        r"chain\s+controls?",
        r"chains?\s+required",
        r"restricted\s+access",
        r"construction",
        r"accident",
        r"incident",
        r"traffic\s+delays?",
    )
]
ROAD_CONDITION_PATTERNS = (
    (re.compile(r"full\s+closure", re.IGNORECASE), "full closures"),
    (re.compile(r"lane\s+closure", re.IGNORECASE), "lane closures"),
    (re.compile(r"road\s+closed", re.IGNORECASE), "road closures"),
    (re.compile(r"chain\s+control|chains?\s+required", re.IGNORECASE), "chain requirements"),
    (re.compile(r"construction", re.IGNORECASE), "construction"),
    (re.compile(r"accident|incident", re.IGNORECASE), "incidents"),
)


def truncate_summary(text: str, max_length: int) -> str:
    """Cut text to at most max_length characters, preferring sentence or word boundaries."""
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[: max(max_length, 0)]
    window = text[:max_length]
    sentence_end = max(window.rfind("."), window.rfind("!"), window.rfind("?"))
    if sentence_end > max_length * 0.6:
        return window[: sentence_end + 1]
    room = window[: max(max_length - len(ELLIPSIS), 0)]
    last_space = room.rfind(" ")
    if last_space > max_length * 0.8:
        return room[:last_space].rstrip() + ELLIPSIS
    return room.rstrip() + ELLIPSIS


def tidy(text: str) -> str:
    text = REPEATED_COLON_RE.sub(":", text)
    text = REPEATED_PERIOD_RE.sub(".", text)
    text = SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    return collapse_whitespace(text)


def summarize_map_labels(raw_text: str) -> str | None:
    """Summarize the condition labels visible on a dynamic road map page."""
    labels: dict[str, str] = {}
    for pattern in MAP_LABEL_PATTERNS:
        for match in pattern.finditer(raw_text):
            label = collapse_whitespace(match.group(0).strip("!* "))
            labels.setdefault(label.lower(), label)
    if not labels:
        return None

    found = list(labels.values())
    closures = [label for label in found if re.search(r"closure|closed", label, re.IGNORECASE)]
    restrictions = [label for label in found if re.search(r"chain|restricted", label, re.IGNORECASE)]
    delays = [
        label
        for label in found
        if re.search(r"construction|accident|incident|delay", label, re.IGNORECASE)
    ]

    parts: list[str] = []
    if closures:
        parts.append(f"Closures: {', '.join(closures)}")
    if restrictions:
        parts.append(f"Restrictions: {', '.join(restrictions)}")
    if delays:
        parts.append(f"Delays: {', '.join(delays)}")
    if not parts:
        return None
    return f"{'. '.join(parts)}. Check QuickMap for specific locations and details."


def road_conditions(raw_text: str) -> list[str]:
    return [label for pattern, label in ROAD_CONDITION_PATTERNS if pattern.search(raw_text)]


def _road_conditions_summary(raw_text: str) -> str | None:
    conditions = road_conditions(raw_text)
    if not conditions:
        return None
    return (
        f"Road conditions detected: {', '.join(conditions)}. "
        "Check the source for specific locations and details."
    )


def _format_alerts(match: re.Match[str]) -> str:
    alerts = collapse_whitespace(VIEW_ALL_ALERTS_RE.sub(" ", match.group(1)))
    parts: list[str] = []
    for restriction in FIRE_RESTRICTION_RE.finditer(alerts):
        location = restriction.group(1).strip()
        if 5 < len(location) < 100:
            part = f"Fire Restrictions: {location}"
            if part not in parts:
                parts.append(part)
    for fire in NAMED_FIRE_RE.finditer(alerts):
        name = fire.group(1)
        if name not in parts:
            parts.append(name)
    if not parts:
        return match.group(0)
    return f"Alerts: {', '.join(parts)}"


def _drop_duplicate_org_trailer(text: str) -> str:
    match = ORG_TRAILER_RE.search(text)
    if match and match.group(1) in text[: match.start()]:
        return text[: match.start()]
    return text


def _summarize_header_sections(sections: list[str], max_length: int) -> str | None:
    if not sections:
        return None

    combined = tidy(" ".join(sections))
    fire_danger = None
    danger_match = FIRE_DANGER_RE.search(combined)
    if danger_match:
        fire_danger = danger_match.group(1)
        combined = combined[: danger_match.start()].rstrip()
        combined = DANGER_LABEL_TRAILER_RE.sub("", combined)
    combined = ALERTS_RE.sub(_format_alerts, combined, count=1)
    combined = _drop_duplicate_org_trailer(combined).rstrip(" ,;")
    if fire_danger:
        if combined and not SENTENCE_END_RE.search(combined):
            combined += "."
        combined = f"{combined} Fire Danger: {fire_danger}."
    combined = tidy(combined)
    if len(combined) <= 20:
        return None
    return truncate_summary(combined, max_length)


def is_featured_content(text: str) -> bool:
    """Pages whose only "alerts" are feature articles or a no-alerts placeholder."""
    if REAL_ALERT_RE.search(text) or road_conditions(text):
        return False
    return bool(FEATURED_CONTENT_RE.search(text) or NO_FEATURED_ALERTS_RE.search(text))


def score_block(block: str, config: ClassifierSettings | None = None) -> int:
    config = config or settings.classifier
    lower = block.lower()
    score = 0

    if any(keyword in lower for keyword in FEATURED_ARTICLE_KEYWORDS):
        score -= 100
    if NO_FEATURED_ALERTS_RE.search(block):
        score -= 100

    for keyword in config.high_priority_keywords:
        if keyword in lower:
            score += config.high_priority_weight
    for keyword in config.medium_priority_keywords:
        if keyword in lower:
            score += config.medium_priority_weight
    for keyword in config.low_priority_keywords:
        if keyword in lower:
            score += config.low_priority_weight

    if ORG_LEAD_RE.match(block) and len(block) < 100:
        score -= 5
    if all(
        phrase in lower
        for phrase in ("know before you go", "national weather service", "caltrans social media")
    ):
        score -= 50
    if "travel alert" in lower and "know before you go" in lower:
        score -= 30
    if "winter driving tips" in lower:
        score -= 20
    if any(keyword in lower for keyword in UI_CHROME_KEYWORDS):
        score -= 50

    if any(keyword in lower for keyword in ROAD_BONUS_KEYWORDS):
        score += 15
    if "traffic" in lower and TRAFFIC_FLOW_RE.search(block):
        score += 10
    if any(keyword in lower for keyword in INCIDENT_KEYWORDS):
        score += 12
    return score


def select_blocks(blocks: list[str], config: ClassifierSettings | None = None) -> list[str]:
    """Highest scoring blocks in score order, ties kept in page order."""
    scored = [(score_block(block, config), index, block) for index, block in enumerate(blocks)]
    positive = sorted(
        (item for item in scored if item[0] > 0), key=lambda item: (-item[0], item[1])
    )
    if positive:
        return [block for _, _, block in positive[:MAX_SELECTED_BLOCKS]]

    fallback = [
        block
        for block in blocks
        if not FALLBACK_NOISE_RE.search(block)
        and not (ORG_LEAD_RE.match(block) and len(block) < 100)
        and not is_org_name_list(block)
    ]
    return fallback[:MAX_SELECTED_BLOCKS]


def _polish_block(block: str) -> str | None:
    if CLICK_THROUGH_RE.search(block) and len(block) < 60:
        return None
    if alpha_ratio(block) < 0.3 or len(block) < 15:
        return None
    if "404 page not fou" in block.lower():
        return None
    block = TRAILING_ELLIPSIS_RE.sub("", block).strip()
    block = split_camel_joins(block)
    if not SENTENCE_END_RE.search(block):
        block += "."
    return block


def _fallback_sentences(cleaned: str, limit: int, min_length: int, max_length: int) -> list[str]:
    sentences: list[str] = []
    for sentence in split_sentences(cleaned):
        if not min_length <= len(sentence) <= max_length:
            continue
        if FALLBACK_NOISE_RE.search(sentence) or alpha_ratio(sentence) < 0.2:
            continue
        sentences.append(sentence)
        if len(sentences) >= limit:
            break
    return sentences


def _dynamic_map_advisory() -> str:
    providers = settings.providers
    host = providers.dynamic_map_url.split("//", 1)[-1].rstrip("/")
    return (
        "This is a general road information page. For current road conditions in this area, "
        f"visit QuickMap ({host}) or call {providers.dynamic_map_phone}. "
        "You can also check the source link for specific highway conditions."
    )


@dataclass(frozen=True)
class PageSummary:
    text: str
    # True when the page had no status of its own and the text only points
    # the reader at the map and phone line.
    advisory: bool = False


def summarize_page(
    raw_text: str,
    max_length: int | None = None,
    dynamic_map: bool = False,
) -> PageSummary:
    if not raw_text or not raw_text.strip():
        return PageSummary(NO_CONTENT)
    max_length = max_length or settings.classifier.summary_max_length

    if dynamic_map:
        map_summary = summarize_map_labels(raw_text)
        if map_summary:
            return PageSummary(truncate_summary(map_summary, max_length))

    page = normalize_page(raw_text)
    header_summary = _summarize_header_sections(page.sections, max_length)
    if header_summary:
        return PageSummary(header_summary)

    cleaned = page.cleaned
    if is_featured_content(raw_text):
        return PageSummary(truncate_summary(NO_ACTIVE_ALERTS, max_length))
    if ERROR_PAGE_RE.search(cleaned) and len(cleaned) < ERROR_PAGE_MAX_LENGTH:
        return PageSummary(truncate_summary(PAGE_NOT_FOUND, max_length))

    if len(cleaned) < 20:
        conditions = _road_conditions_summary(raw_text)
        return PageSummary(truncate_summary(conditions or UNPARSEABLE, max_length))

    if not page.sentences:
        conditions = _road_conditions_summary(raw_text)
        if conditions:
            return PageSummary(truncate_summary(conditions, max_length))
        sentences = _fallback_sentences(cleaned, limit=3, min_length=15, max_length=500)
        if sentences:
            return PageSummary(truncate_summary(" ".join(sentences), max_length))
        return PageSummary(truncate_summary(UNPARSEABLE, max_length))

    polished = [block for block in map(_polish_block, select_blocks(page.sentences)) if block]
    summary = " ".join(polished)
    for pattern in SUMMARY_NOISE_PATTERNS:
        summary = pattern.sub(" ", summary)
    summary = tidy(summary)

    if len(NAVIGATION_RE.findall(summary)) >= 2 and len(summary) < 200 and not STATUS_INFO_RE.search(cleaned):
        return PageSummary(truncate_summary(_dynamic_map_advisory(), max_length), advisory=True)

    if len(summary) < 20:
        summary = " ".join(_fallback_sentences(cleaned, limit=2, min_length=20, max_length=300))
    if len(summary) < 20:
        return PageSummary(truncate_summary(UNPARSEABLE, max_length))

    summary = tidy(split_camel_joins(summary))
    return PageSummary(truncate_summary(summary, max_length))


def generate_detailed_summary(
    raw_text: str,
    max_length: int | None = None,
    dynamic_map: bool = False,
) -> str:
    """Summarize a scraped page in at most max_length characters."""
    return summarize_page(raw_text, max_length=max_length, dynamic_map=dynamic_map).text
