import pytest

from peakconditions.scoring.classifier import classify
from peakconditions.scoring.status import infer_status_from_text


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Lane closure ahead due to construction", "restricted"),
        ("Road closed due to washout", "closed"),
        ("Chains required above 5000 ft, road otherwise open", "chains_required"),
        ("Permit required for overnight use", "restricted"),
        ("Chain control in effect on Highway 2", "chains_required"),
        ("Highway 2 has a full closure at Islip Saddle", "closed"),
        ("The campground is temporarily closed for repairs", "closed"),
        ("All trails are open and accessible", "open"),
        ("Welcome to the ranger district", "unknown"),
        ("", "unknown"),
    ],
)
def test_infer_status_from_text(text: str, expected: str) -> None:
    assert infer_status_from_text(text) == expected


def test_markup_does_not_leak_into_status() -> None:
    # "open" only appears inside the link target
    assert infer_status_from_text("[Trail report](https://example.com/open-trails)") == "unknown"


def test_classify_returns_code_and_summary() -> None:
    raw = (
        "Welcome to the district office page for visitors.\n"
        "Highway 2 has a full closure at Islip Saddle due to rockfall. Crews expect to reopen next week."
    )

    result = classify(raw)

    assert result.status_code == "closed"
    assert result.summary.startswith("Highway 2 has a full closure at Islip Saddle due to rockfall.")
    assert len(result.summary) <= 250
    assert not result.advisory


def test_navigation_only_page_is_flagged_as_advisory() -> None:
    result = classify("Visit the highway department home page, search the site map, or contact us for help.")

    assert result.status_code == "unknown"
    assert result.advisory
    assert "1-800-427-7623" in result.summary
