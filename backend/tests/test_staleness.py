import datetime

import pytest

from fakes import make_snapshot, make_source
from peakconditions.jobs.staleness import needs_refresh, staleness_threshold

NOW = datetime.datetime(2026, 1, 15, 12, 0, tzinfo=datetime.UTC)


def test_thresholds_by_kind() -> None:
    assert staleness_threshold("weather") == datetime.timedelta(hours=3)
    assert staleness_threshold("land_status") == datetime.timedelta(hours=6)
    assert staleness_threshold("road_status") == datetime.timedelta(hours=6)


def test_missing_snapshot_needs_refresh() -> None:
    assert needs_refresh(make_source(), None, now=NOW)


@pytest.mark.parametrize("kind", ["weather", "land_status", "road_status"])
def test_fresh_success_is_kept_unless_forced(kind: str) -> None:
    source = make_source(kind=kind)
    snapshot = make_snapshot(source, datetime.timedelta(hours=1), now=NOW)

    assert not needs_refresh(source, snapshot, now=NOW)
    assert needs_refresh(source, snapshot, now=NOW, force=True)


def test_weather_goes_stale_before_land_status() -> None:
    weather = make_source(kind="weather")
    land = make_source(kind="land_status")
    age = datetime.timedelta(hours=4)

    assert needs_refresh(weather, make_snapshot(weather, age, now=NOW), now=NOW)
    assert not needs_refresh(land, make_snapshot(land, age, now=NOW), now=NOW)


def test_degraded_road_snapshot_is_retried_early() -> None:
    road = make_source(kind="road_status", locator="https://roads.dot.ca.gov/")
    land = make_source(kind="land_status")
    young = datetime.timedelta(minutes=10)

    assert needs_refresh(road, make_snapshot(road, young, outcome="degraded", now=NOW), now=NOW)
    assert not needs_refresh(land, make_snapshot(land, young, outcome="degraded", now=NOW), now=NOW)


def test_only_the_stale_source_is_selected() -> None:
    stale = make_source(kind="land_status")
    fresh = make_source(kind="land_status")
    latest = {
        stale.id: make_snapshot(stale, datetime.timedelta(hours=8), now=NOW),
        fresh.id: make_snapshot(fresh, datetime.timedelta(hours=1), now=NOW),
    }

    selected = [source for source in (stale, fresh) if needs_refresh(source, latest[source.id], now=NOW)]

    assert selected == [stale]


def test_young_road_advisory_snapshot_is_retried() -> None:
    road = make_source(kind="road_status", locator="https://roads.dot.ca.gov/")
    advisory = make_snapshot(road, datetime.timedelta(minutes=10), outcome="degraded", now=NOW).model_copy(
        update={"summary": "For current road conditions, visit QuickMap or call 1-800-427-7623."}
    )

    assert needs_refresh(road, advisory, now=NOW)
