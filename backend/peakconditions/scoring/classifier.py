from __future__ import annotations

from dataclasses import dataclass

from peakconditions.schemas.status import StatusCode
from peakconditions.scoring.status import infer_status_from_text
from peakconditions.scoring.summary import summarize_page


@dataclass(frozen=True)
class ClassifiedStatus:
    status_code: StatusCode
    summary: str
    advisory: bool = False


def classify(raw_text: str, max_length: int | None = None, dynamic_map: bool = False) -> ClassifiedStatus:
    """Status code and summary for a scraped page. Pure; never raises on malformed text."""
    summary = summarize_page(raw_text or "", max_length=max_length, dynamic_map=dynamic_map)
    return ClassifiedStatus(
        status_code=infer_status_from_text(raw_text or ""),
        summary=summary.text,
        advisory=summary.advisory,
    )
