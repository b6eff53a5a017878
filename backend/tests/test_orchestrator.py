import asyncio
import datetime
import json

import httpx
import pytest

from fakes import FakeStore, make_point, make_source, mock_client
from peakconditions.config.settings import settings
from peakconditions.jobs.orchestrator import refresh_source
from peakconditions.jobs.staleness import needs_refresh
from peakconditions.providers.caltrans import NO_ACTIVE_CLOSURES
from peakconditions.providers.errors import UnavailableError
from peakconditions.providers.nws import CurrentConditions, GridPoint, WeatherReport

OPEN_PAGE = "# Trail Conditions\nThe Crystal Lake road is open to all vehicles for the season.\n" * 5
NAVIGATION_PAGE = "Visit the highway department home page, search the site map, or contact us for help."


@pytest.fixture(autouse=True)
def firecrawl_key(monkeypatch) -> None:
    monkeypatch.setattr(settings.providers, "firecrawl_api_key", "test-key")


def scrape_response(markdown: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        200,
        json={"success": True, "data": {"markdown": markdown, "metadata": {"statusCode": status_code}}},
    )


def run_refresh(source, handler, point=None):
    store = FakeStore()
    point = point or make_point([source])

    async def run():
        async with mock_client(handler) as client:
            return await refresh_source(store, client, point, source)

    snapshot = asyncio.run(run())
    assert store.snapshots == [snapshot]
    return snapshot


def test_not_found_page_becomes_degraded_snapshot() -> None:
    source = make_source(kind="land_status")

    snapshot = run_refresh(source, lambda request: scrape_response("# 404\nPage not found"))

    assert snapshot.outcome == "degraded"
    assert snapshot.status_code == "unknown"
    assert "URL may have changed" in snapshot.summary
    assert snapshot.raw_payload.startswith("Error: ")


def test_timeout_becomes_degraded_snapshot() -> None:
    source = make_source(kind="land_status")

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    snapshot = run_refresh(source, handler)

    assert snapshot.outcome == "degraded"
    assert snapshot.summary == "Data fetch timed out. Please check the source for current conditions."
    assert snapshot.details["failure"] == "timeout"


def test_content_page_is_classified() -> None:
    source = make_source(kind="land_status")

    snapshot = run_refresh(source, lambda request: scrape_response(OPEN_PAGE))

    assert snapshot.outcome == "success"
    assert snapshot.status_code == "open"
    assert "Crystal Lake road is open" in snapshot.summary
    assert snapshot.details == {"strategy": "content_fetch"}


def test_uninformative_page_is_still_a_success() -> None:
    source = make_source(kind="land_status")
    page = "Welcome to the ranger district. Plan your visit with the maps below. " * 5

    snapshot = run_refresh(source, lambda request: scrape_response(page))

    assert snapshot.outcome == "success"
    assert snapshot.status_code == "unknown"


def test_raw_payload_is_bounded() -> None:
    source = make_source(kind="land_status")
    page = "The road is open. " * 2000

    snapshot = run_refresh(source, lambda request: scrape_response(page))

    assert len(snapshot.raw_payload) == settings.classifier.raw_payload_max_length


def test_zero_closures_is_open() -> None:
    source = make_source(kind="road_status", locator="https://roads.dot.ca.gov/")

    def handler(request: httpx.Request) -> httpx.Response:
        assert "alpha.ca.gov" in request.url.host
        return httpx.Response(200, json={"features": []})

    snapshot = run_refresh(source, handler)

    assert snapshot.outcome == "success"
    assert snapshot.status_code == "open"
    assert snapshot.summary == NO_ACTIVE_CLOSURES
    assert snapshot.details["strategy"] == "incident_api"


def test_incident_failure_falls_back_to_map_scrape() -> None:
    source = make_source(kind="road_status", locator="https://roads.dot.ca.gov/")
    scraped: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if "alpha.ca.gov" in request.url.host:
            return httpx.Response(503)
        url = json.loads(request.content)["url"]
        scraped.append(url)
        return scrape_response("Lane Closures Chain Control Construction")

    snapshot = run_refresh(source, handler)

    assert snapshot.outcome == "success"
    assert snapshot.status_code == "restricted"
    assert snapshot.summary.startswith("Closures: Lane Closures.")
    assert snapshot.details["strategy"] == "dynamic_map_area"
    assert scraped[0].startswith("https://quickmap.dot.ca.gov/?extent=")


def test_road_chain_exhausted_points_to_map_and_phone() -> None:
    source = make_source(kind="road_status", locator="https://roads.dot.ca.gov/")

    snapshot = run_refresh(source, lambda request: httpx.Response(503))

    assert snapshot.outcome == "degraded"
    assert snapshot.status_code == "unknown"
    assert snapshot.summary.startswith("Unable to fetch data automatically.")
    assert "1-800-427-7623" in snapshot.summary


def test_road_without_coordinates_skips_incident_api() -> None:
    source = make_source(kind="road_status", locator="https://roads.dot.ca.gov/")
    point = make_point([source], latitude=None, longitude=None)
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return scrape_response("Chain control is in effect on Highway 2 above Wrightwood tonight. " * 3)

    snapshot = run_refresh(source, handler, point=point)

    assert hosts == ["api.firecrawl.dev"]
    assert snapshot.status_code == "chains_required"


def test_weather_failure_propagates_and_persists_nothing(monkeypatch) -> None:
    source = make_source(kind="weather", locator="")
    store = FakeStore()

    async def fail(*args, **kwargs):
        raise UnavailableError("weather api down")

    monkeypatch.setattr("peakconditions.providers.nws.fetch_weather", fail)

    async def run():
        async with mock_client(lambda request: httpx.Response(500)) as client:
            await refresh_source(store, client, make_point([source]), source)

    with pytest.raises(UnavailableError):
        asyncio.run(run())
    assert store.snapshots == []


def test_weather_snapshot(monkeypatch) -> None:
    source = make_source(kind="weather", locator="34.37,-117.81")
    seen: list[tuple[float, float]] = []

    async def fake_weather(client, lat, lng, point_name=None):
        seen.append((lat, lng))
        return WeatherReport(
            summary="Current: 41°F. Sunny",
            grid_point=GridPoint(grid_id="LOX", grid_x=170, grid_y=80),
            current=CurrentConditions(temperature=41, temperature_unit="F"),
            fetched_at=datetime.datetime.now(datetime.UTC),
        )

    monkeypatch.setattr("peakconditions.providers.nws.fetch_weather", fake_weather)

    snapshot = run_refresh(source, lambda request: httpx.Response(500))

    assert seen == [(34.37, -117.81)]
    assert snapshot.outcome == "success"
    assert snapshot.summary == "Current: 41°F. Sunny"
    assert snapshot.details["grid_point"]["grid_id"] == "LOX"


def test_malformed_closure_feature_becomes_degraded_snapshot() -> None:
    source = make_source(kind="road_status", locator="https://roads.dot.ca.gov/")

    def handler(request: httpx.Request) -> httpx.Response:
        if "alpha.ca.gov" in request.url.host:
            return httpx.Response(200, json={"features": [{"properties": {"route": 395}}]})
        return httpx.Response(200, json={"success": True, "data": ["x"]})

    snapshot = run_refresh(source, handler)

    assert snapshot.outcome == "degraded"
    assert snapshot.status_code == "unknown"
    assert snapshot.details["failure"] == "unavailable"
    assert "1-800-427-7623" in snapshot.summary


def test_malformed_scrape_response_becomes_degraded_snapshot() -> None:
    source = make_source(kind="land_status")

    snapshot = run_refresh(source, lambda request: httpx.Response(200, json={"success": True, "data": ["x"]}))

    assert snapshot.outcome == "degraded"
    assert snapshot.summary.startswith("Unable to fetch data automatically.")
    assert snapshot.details["url"] == source.locator


def test_road_navigation_page_is_degraded_and_retried_early() -> None:
    source = make_source(kind="road_status", locator="https://roads.dot.ca.gov/")
    point = make_point([source], latitude=None, longitude=None)

    snapshot = run_refresh(source, lambda request: scrape_response(NAVIGATION_PAGE), point=point)

    assert snapshot.outcome == "degraded"
    assert snapshot.status_code == "unknown"
    assert "1-800-427-7623" in snapshot.summary
    assert snapshot.details == {"strategy": "content_fetch", "failure": "unavailable"}
    later = snapshot.fetched_at + datetime.timedelta(minutes=10)
    assert needs_refresh(source, snapshot, now=later)


def test_land_navigation_page_stays_a_success() -> None:
    source = make_source(kind="land_status")

    snapshot = run_refresh(source, lambda request: scrape_response(NAVIGATION_PAGE))

    assert snapshot.outcome == "success"
    assert snapshot.status_code == "unknown"
