from peakconditions.parsing.normalizer import (
    clean_text,
    is_content_block,
    normalize,
    split_sections,
)


def test_clean_text_strips_markup_and_keeps_link_text() -> None:
    raw = "**Road** is [open](https://example.com/roads) today ![map](https://example.com/map.png)"
    assert clean_text(raw) == "Road is open today"


def test_clean_text_strips_html_urls_and_boilerplate() -> None:
    raw = (
        "Skip to main content\n"
        "<p>Gate <b>closed</b> at the trailhead.</p>\n"
        "See https://www.fs.usda.gov/alerts for more."
    )
    assert clean_text(raw) == "Gate closed at the trailhead. See for more."


def test_clean_text_keeps_plain_prose() -> None:
    plain = "The North Fork road is open to vehicles.   Expect delays\nnear the summit."
    assert clean_text(plain) == " ".join(plain.split())
    assert clean_text(clean_text(plain)) == clean_text(plain)


def test_split_sections_keeps_preamble_without_heading() -> None:
    sections = split_sections("Intro text\n# Alerts\nBody one\n## Status\nBody two")

    assert sections == [(None, "Intro text"), ("Alerts", "Body one"), ("Status", "Body two")]


def test_normalize_prefers_status_sections() -> None:
    raw = (
        "# Alerts\n"
        "Fire restrictions are in effect for the forest.\n"
        "# Visit\n"
        "Plan your trip with our trip planner before you leave home."
    )
    assert normalize(raw) == ["Alerts: Fire restrictions are in effect for the forest."]


def test_normalize_splits_sentences_and_drops_noise() -> None:
    raw = "Ok. The road is open to all vehicles. Snow is expected later this week. 12 34 56 78 90 11 22 33."

    assert normalize(raw) == [
        "The road is open to all vehicles.",
        "Snow is expected later this week.",
    ]


def test_org_name_lists_are_not_content() -> None:
    nav = "Angeles National Forest Cleveland National Forest Inyo National Forest Sierra National Forest"
    assert not is_content_block(nav)
    assert is_content_block(f"{nav} Fire restrictions in effect")


def test_short_boilerplate_is_not_content() -> None:
    assert not is_content_block("Official websites use .gov addresses")


def test_status_sections_skip_featured_articles_and_placeholders() -> None:
    raw = (
        "# Alerts\n"
        "Fire Restrictions for the Angeles National Forest\n"
        "No Featured Alerts at this Time\n"
        "Volunteer day recap and photos from the weekend.\n"
        "# Featured News Alerts\n"
        "Read about the new visitor center opening this spring.\n"
        "# Current Conditions\n"
        "Upper trailsClosedAbove the saddle until further notice."
    )

    assert normalize(raw) == [
        "Alerts: Fire Restrictions for the Angeles National Forest",
        "Current Conditions: Upper trails Closed Above the saddle until further notice.",
    ]
