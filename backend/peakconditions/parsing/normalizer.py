from __future__ import annotations

import re
from dataclasses import dataclass

CODE_FENCE_RE = re.compile(r"```[\s\S]*?```")
IMAGE_MD_RE = re.compile(r"!\[[^\]]*\](?:\([^)]*\))?")
LINK_MD_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
HEADER_MD_RE = re.compile(r"^#{1,6}\s+", re.MULTILINE)
RULE_MD_RE = re.compile(r"^[-*_]{3,}\s*$", re.MULTILINE)
BULLET_MD_RE = re.compile(r"^\s*[-*+]\s+", re.MULTILINE)
NUMBERED_MD_RE = re.compile(r"^\s*\d+\.\s+", re.MULTILINE)
BOLD_MD_RE = re.compile(r"\*\*([^*]+)\*\*|__([^_]+)__")
ITALIC_MD_RE = re.compile(r"\*([^*\n]+)\*|(?<!\w)_([^_\n]+)_(?!\w)")
INLINE_CODE_RE = re.compile(r"`[^`]+`")
HTML_TAG_RE = re.compile(r"<[^>]+>")
URL_RE = re.compile(r"https?://\S+|www\.\S+")
SYMBOL_LINE_RE = re.compile(r"^[^\w\s]+$", re.MULTILINE)
WHITESPACE_RE = re.compile(r"\s+")
SECTION_HEADER_RE = re.compile(r"^#{1,6}\s+(.+)$")
SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+")
CAMEL_JOIN_RE = re.compile(r"([a-z])([A-Z])")

STATUS_HEADER_RE = re.compile(r"alert|fire|danger|restriction|status|condition", re.IGNORECASE)
STATUS_KEYWORD_RE = re.compile(r"fire|alert|danger|restriction|closed|open", re.IGNORECASE)
# "<Capitalized> <Capitalized> <OrgSuffix>", e.g. "Angeles National Forest"
ORG_NAME_RE = re.compile(
    r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\s+(?:Forest|Park|Monument|Wilderness|District|Service|Office|Area)\b"
)
FEATURED_CONTENT_RE = re.compile(
    r"\bfeatured\s+(?:news|stories|story|content|articles?)\b"
    r"|\bview\s+all\s+(?:features|news|stories)\b"
    r"|\bsubscribe\s+to\s+(?:our\s+)?(?:newsletter|updates)\b"
    r"|\bpress\s+releases?\b",
    re.IGNORECASE,
)
NO_FEATURED_ALERTS_RE = re.compile(r"no\s+featured\s+alerts(?:\s+at\s+this\s+time)?", re.IGNORECASE)

BOILERPLATE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"Skip to main content",
        r"Skip to content",
        r"Official websites use \.gov",
        r"Secure \.gov websites use HTTPS",
        r"A \.gov website belongs to an official government organization in the United States",
        r"A lock.*or https.*means you've safely connected",
        r"A lock.*means you've safely connected",
        r"LockLocked padlock",
        r"Lock.*padlock.*means",
        r"You can also call.*for current highway conditions",
        r"You can also call 1-800-427-7623",
        r"\bImage of\b[^.]*\.",
        r"\bIcon\b[^.]*\.",
        r"\bDot gov\b",
        r"\bHttps\b",
        r"means you've safely connected",
        r"safely connected to the",
        r"belongs to an official government organization in the United States",
        r"Share sensitive information only on official, secure websites\.?",
        r"Share sensitive information only on official",
        r"No Featured Alerts at this Time",
        r"View All Features",
    )
]

STRICT_BOILERPLATE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"skip to main content",
        r"official websites use \.gov",
        r"secure \.gov websites",
        r"a \.gov website belongs to",
        r"lock.*padlock.*means",
        r"you can also call 1-800",
        r"image of",
        r"\bicon\b",
        r"dot gov",
        r"https.*means",
    )
]

MIN_BLOCK_LENGTH = 20
MIN_ALPHA_RATIO = 0.3
ORG_LIST_MAX_LENGTH = 300


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


def alpha_ratio(text: str) -> float:
    if not text:
        return 0.0
    letters = sum(1 for ch in text if ch.isascii() and ch.isalpha())
    return letters / len(text)


def strip_markup(raw_text: str) -> str:
    text = raw_text.replace("\r\n", "\n")
    text = CODE_FENCE_RE.sub(" ", text)
    text = IMAGE_MD_RE.sub(" ", text)
    text = LINK_MD_RE.sub(r"\1", text)
    text = HEADER_MD_RE.sub(" ", text)
    text = RULE_MD_RE.sub(" ", text)
    text = BULLET_MD_RE.sub(" ", text)
    text = NUMBERED_MD_RE.sub(" ", text)
    text = BOLD_MD_RE.sub(lambda match: match.group(1) or match.group(2), text)
    text = ITALIC_MD_RE.sub(lambda match: match.group(1) or match.group(2), text)
    text = INLINE_CODE_RE.sub(" ", text)
    text = HTML_TAG_RE.sub(" ", text)
    return URL_RE.sub(" ", text)


def clean_text(raw_text: str) -> str:
    """Plain prose from scraped markdown/HTML, whitespace collapsed."""
    if not raw_text:
        return ""
    text = strip_markup(raw_text)
    for pattern in BOILERPLATE_PATTERNS:
        text = pattern.sub(" ", text)
    text = SYMBOL_LINE_RE.sub(" ", text)
    return collapse_whitespace(text)


def split_sections(text: str) -> list[tuple[str | None, str]]:
    """Markdown sections as (heading, body); text before the first heading has no heading."""
    sections: list[tuple[str | None, str]] = []
    current_heading: str | None = None
    buffer: list[str] = []
    for line in text.replace("\r\n", "\n").splitlines():
        match = SECTION_HEADER_RE.match(line.strip())
        if match:
            if buffer or current_heading is not None:
                sections.append((current_heading, "\n".join(buffer).strip()))
            current_heading = match.group(1).strip()
            buffer = []
            continue
        buffer.append(line)
    if buffer or current_heading is not None:
        sections.append((current_heading, "\n".join(buffer).strip()))
    return sections


def is_org_name_list(block: str) -> bool:
    """Short blocks made of several agency names are navigation link lists."""
    if len(block) >= ORG_LIST_MAX_LENGTH:
        return False
    if len(ORG_NAME_RE.findall(block)) <= 2:
        return False
    return not STATUS_KEYWORD_RE.search(block)


def is_content_block(block: str) -> bool:
    if len(block) < MIN_BLOCK_LENGTH:
        return False
    if len(block) < 100 and any(pattern.search(block) for pattern in STRICT_BOILERPLATE_PATTERNS):
        return False
    if alpha_ratio(block) < MIN_ALPHA_RATIO:
        return False
    return not is_org_name_list(block)


def split_camel_joins(text: str) -> str:
    """Re-insert spaces lost between concatenated link labels, e.g. "ClosuresFire"."""
    return CAMEL_JOIN_RE.sub(r"\1 \2", text)


def split_sentences(cleaned_text: str) -> list[str]:
    return [sentence.strip() for sentence in SENTENCE_BREAK_RE.split(cleaned_text) if sentence.strip()]


def split_blocks(cleaned_text: str) -> list[str]:
    """Sentence blocks from already-cleaned text, noise dropped."""
    if not cleaned_text or len(cleaned_text) < MIN_BLOCK_LENGTH:
        return []
    return [block for block in split_sentences(cleaned_text) if is_content_block(block)]


def status_sections(raw_text: str) -> list[str]:
    """Status-relevant markdown sections rendered as "<header>: <body>".

    Feature-article sections are skipped, and a "no featured alerts"
    placeholder ends the body of the section it appears in.
    """
    blocks: list[str] = []
    for heading, body in split_sections(raw_text):
        if heading is None or not STATUS_HEADER_RE.search(heading) or NO_FEATURED_ALERTS_RE.search(heading):
            continue
        placeholder = NO_FEATURED_ALERTS_RE.search(body)
        if placeholder:
            body = body[: placeholder.start()]
        if FEATURED_CONTENT_RE.search(heading) or FEATURED_CONTENT_RE.search(body):
            continue
        cleaned_body = split_camel_joins(clean_text(body))
        if len(cleaned_body) <= MIN_BLOCK_LENGTH:
            continue
        blocks.append(f"{clean_text(heading)}: {cleaned_body}")
    return blocks


@dataclass(frozen=True)
class NormalizedPage:
    cleaned: str
    sections: list[str]
    sentences: list[str]

    @property
    def blocks(self) -> list[str]:
        return self.sections or self.sentences


def normalize_page(raw_text: str) -> NormalizedPage:
    cleaned = clean_text(raw_text)
    return NormalizedPage(
        cleaned=cleaned,
        sections=[block for block in status_sections(raw_text) if is_content_block(block)],
        sentences=split_blocks(cleaned),
    )


def normalize(raw_text: str) -> list[str]:
    """Ordered content blocks for a scraped page.

    Status-relevant header sections win when the page has any; otherwise the
    cleaned text is segmented at sentence boundaries.
    """
    return normalize_page(raw_text).blocks
