import pytest

from peakconditions.scoring.summary import (
    NO_ACTIVE_ALERTS,
    NO_CONTENT,
    PAGE_NOT_FOUND,
    UNPARSEABLE,
    generate_detailed_summary,
    score_block,
    select_blocks,
    truncate_summary,
)

LONG_PAGE = " ".join(
    f"Forest road {index} is open to high clearance vehicles with chains required above the gate."
    for index in range(40)
)


@pytest.mark.parametrize(
    "raw",
    [
        LONG_PAGE,
        "x" * 2000,
        "# Alerts\n" + "Fire Restrictions for the Angeles National Forest " * 20,
        "Lane Closures " * 100,
    ],
)
def test_summary_never_exceeds_max_length(raw: str) -> None:
    assert len(generate_detailed_summary(raw)) <= 250
    assert len(generate_detailed_summary(raw, max_length=80)) <= 80


def test_truncate_prefers_sentence_boundary() -> None:
    text = "First sentence is here. " * 20

    result = truncate_summary(text, 100)

    assert result.endswith(".")
    assert len(result) <= 100


def test_truncate_falls_back_to_word_boundary() -> None:
    result = truncate_summary("word " * 100, 50)

    assert result.endswith("...")
    assert len(result) <= 50
    assert set(result[:-3].split()) == {"word"}


def test_empty_page() -> None:
    assert generate_detailed_summary("   ") == NO_CONTENT


def test_featured_articles_are_not_an_all_clear() -> None:
    raw = "Featured News\nRead about our new visitor center and volunteer program this season."
    assert generate_detailed_summary(raw) == NO_ACTIVE_ALERTS


def test_short_error_page() -> None:
    assert generate_detailed_summary("404 Page not found") == PAGE_NOT_FOUND


def test_unparseable_page() -> None:
    assert generate_detailed_summary("!!! ??? ...") == UNPARSEABLE


def test_dynamic_map_labels() -> None:
    raw = "Lane Closures Chain Control Construction"

    summary = generate_detailed_summary(raw, dynamic_map=True)

    assert summary == (
        "Closures: Lane Closures. Restrictions: Chain Control. Delays: Construction. "
        "Check QuickMap for specific locations and details."
    )


def test_alert_and_fire_danger_sections() -> None:
    raw = (
        "# Alerts\n"
        "Fire Restrictions for the Angeles National Forest Bobcat Fire\n"
        "# Fire Danger\n"
        "Fire Danger Status: Very High Angeles National Forest"
    )

    summary = generate_detailed_summary(raw)

    assert "Fire Restrictions: the Angeles National Forest" in summary
    assert "Bobcat Fire" in summary
    assert summary.endswith("Fire Danger: Very High.")


def test_ui_chrome_scores_below_zero() -> None:
    assert score_block("Traffic scale pending LCS legend") < 0
    assert score_block("Lane closure on Highway 2 due to construction") > 0


def test_select_blocks_orders_by_score() -> None:
    blocks = [
        "Welcome to the visitor information page.",
        "Snow is possible on the upper road tonight.",
        "Full closure on Highway 2 due to an accident near the tunnel.",
    ]

    selected = select_blocks(blocks)

    assert selected[0] == blocks[2]
    assert blocks[1] in selected


@pytest.mark.parametrize("max_length", [0, 2, 3])
def test_truncate_to_tiny_budget(max_length: int) -> None:
    assert truncate_summary("Road open above the gate.", max_length) == "Road open above the gate."[:max_length]
