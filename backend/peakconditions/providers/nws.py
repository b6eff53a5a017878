"""National Weather Service (api.weather.gov) client.

The NWS API needs no key but expects a descriptive User-Agent. A forecast is a
two-step lookup: coordinates resolve to a forecast grid point, and the grid
point serves forecast periods and nearby observation stations.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import math
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from peakconditions.cache import get_payload, set_payload
from peakconditions.config.settings import settings
from peakconditions.providers.errors import FetchError, UnavailableError
from peakconditions.providers.http import get_json

logger = logging.getLogger(__name__)

WEATHER_UNAVAILABLE = "Weather data unavailable"


class GridPoint(BaseModel):
    grid_id: str
    grid_x: int
    grid_y: int


class ForecastPeriod(BaseModel):
    name: str = ""
    start_time: Optional[datetime.datetime] = None
    end_time: Optional[datetime.datetime] = None
    is_daytime: bool = False
    temperature: Optional[float] = None
    temperature_unit: str = "F"
    wind_speed: str = ""
    wind_direction: str = ""
    short_forecast: str = ""
    detailed_forecast: str = ""


class CurrentConditions(BaseModel):
    temperature: Optional[int] = None
    temperature_unit: Optional[str] = None
    wind_speed: Optional[str] = None
    wind_direction: Optional[str] = None
    conditions: Optional[str] = None


class WeatherReport(BaseModel):
    summary: str
    grid_point: GridPoint
    current: CurrentConditions
    forecast: list[ForecastPeriod] = Field(default_factory=list)
    fetched_at: datetime.datetime


def _headers() -> dict[str, str]:
    return {
        "User-Agent": settings.providers.nws_user_agent,
        "Accept": "application/geo+json",
    }


def _url(path: str) -> str:
    return f"{settings.providers.nws_base_url.rstrip('/')}{path}"


async def _get(client: httpx.AsyncClient, path: str) -> Any:
    payload = await get_json(
        client, _url(path), headers=_headers(), timeout=settings.timeouts.structured_api_seconds
    )
    if not isinstance(payload, dict):
        raise UnavailableError(f"Unexpected payload from {path}")
    return payload


async def get_grid_point(client: httpx.AsyncClient, lat: float, lng: float) -> GridPoint:
    cache_key = f"nws:points:{lat:.4f},{lng:.4f}"
    cached = await get_payload(cache_key)
    if isinstance(cached, dict):
        return GridPoint(**cached)

    payload = await _get(client, f"/points/{lat:.4f},{lng:.4f}")
    props = payload.get("properties") or {}
    try:
        grid_point = GridPoint(
            grid_id=props["gridId"], grid_x=props["gridX"], grid_y=props["gridY"]
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise UnavailableError(f"Grid point missing for {lat:.4f},{lng:.4f}") from exc

    await set_payload(cache_key, grid_point.model_dump(), settings.providers.gridpoint_cache_ttl_seconds)
    return grid_point


def _grid_path(grid_point: GridPoint) -> str:
    return f"/gridpoints/{grid_point.grid_id}/{grid_point.grid_x},{grid_point.grid_y}"


def _parse_period(raw: dict[str, Any]) -> ForecastPeriod:
    return ForecastPeriod(
        name=raw.get("name") or "",
        start_time=raw.get("startTime"),
        end_time=raw.get("endTime"),
        is_daytime=bool(raw.get("isDaytime")),
        temperature=raw.get("temperature"),
        temperature_unit=raw.get("temperatureUnit") or "F",
        wind_speed=raw.get("windSpeed") or "",
        wind_direction=raw.get("windDirection") or "",
        short_forecast=raw.get("shortForecast") or "",
        detailed_forecast=raw.get("detailedForecast") or "",
    )


async def get_forecast(client: httpx.AsyncClient, grid_point: GridPoint) -> list[ForecastPeriod]:
    payload = await _get(client, f"{_grid_path(grid_point)}/forecast")
    periods = (payload.get("properties") or {}).get("periods") or []
    return [_parse_period(period) for period in periods if isinstance(period, dict)]


def score_station(
    station: dict[str, Any],
    point_lat: float | None,
    point_lng: float | None,
    point_name: str | None,
) -> float:
    """Favor high, nearby stations and stations named after the point."""
    props = station.get("properties") or {}
    elevation = (props.get("elevation") or {}).get("value") or 0
    station_name = (props.get("name") or "").lower()
    coords = (station.get("geometry") or {}).get("coordinates") or []

    score = elevation * 0.5
    if point_name:
        for part in point_name.lower().split():
            if len(part) > 3 and part in station_name:
                score += 1000
                break
    if point_lat is not None and point_lng is not None and len(coords) >= 2:
        distance = math.hypot(coords[1] - point_lat, coords[0] - point_lng)
        score += 100 / (1 + distance * 10)
    return score


def _observation_to_conditions(
    payload: dict[str, Any], now: datetime.datetime
) -> CurrentConditions | None:
    props = payload.get("properties") or {}
    timestamp = props.get("timestamp")
    if timestamp:
        try:
            observed = datetime.datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        except ValueError:
            observed = None
        max_age = datetime.timedelta(hours=settings.providers.observation_max_age_hours)
        if observed is not None and now - observed > max_age:
            return None

    temperature = (props.get("temperature") or {}).get("value")
    if temperature is None:
        return None
    wind_speed = (props.get("windSpeed") or {}).get("value")
    wind_direction = (props.get("windDirection") or {}).get("value")
    return CurrentConditions(
        temperature=round(temperature * 9 / 5 + 32),
        temperature_unit="F",
        # km/h to mph
        wind_speed=f"{round(wind_speed * 0.621371)} mph" if wind_speed else None,
        wind_direction=f"{round(wind_direction)}°" if wind_direction else None,
        conditions=props.get("textDescription") or None,
    )


async def get_current_conditions(
    client: httpx.AsyncClient,
    grid_point: GridPoint,
    point_lat: float | None = None,
    point_lng: float | None = None,
    point_name: str | None = None,
    now: datetime.datetime | None = None,
) -> CurrentConditions:
    now = now or datetime.datetime.now(datetime.UTC)
    try:
        stations_payload = await _get(client, f"{_grid_path(grid_point)}/stations")
        stations = [
            station for station in stations_payload.get("features") or [] if isinstance(station, dict)
        ]
        stations.sort(
            key=lambda station: score_station(station, point_lat, point_lng, point_name),
            reverse=True,
        )
        for station in stations[: settings.providers.max_observation_stations]:
            station_id = (station.get("properties") or {}).get("stationIdentifier")
            if not station_id:
                continue
            try:
                observation = await _get(client, f"/stations/{station_id}/observations/latest")
            except FetchError:
                continue
            conditions = _observation_to_conditions(observation, now)
            if conditions is not None:
                return conditions
    except FetchError as exc:
        logger.debug("Station lookup failed, using hourly forecast: %s", exc)

    try:
        hourly = await _get(client, f"{_grid_path(grid_point)}/forecast/hourly")
        periods = (hourly.get("properties") or {}).get("periods") or []
        if periods:
            current = _parse_period(periods[0])
            return CurrentConditions(
                temperature=round(current.temperature) if current.temperature is not None else None,
                temperature_unit=current.temperature_unit or None,
                wind_speed=current.wind_speed or None,
                wind_direction=current.wind_direction or None,
                conditions=current.short_forecast or None,
            )
    except FetchError as exc:
        logger.debug("Hourly forecast unavailable: %s", exc)

    return CurrentConditions()


def _format_temperature(value: float | None, unit: str | None) -> str:
    if value is None:
        return ""
    return f"{round(value)}°{unit or 'F'}"


def generate_weather_summary(
    current: CurrentConditions,
    forecast: list[ForecastPeriod],
    now: datetime.datetime | None = None,
) -> str:
    now = now or datetime.datetime.now(datetime.UTC)
    parts: list[str] = []

    if current.temperature is not None:
        parts.append(f"Current: {_format_temperature(current.temperature, current.temperature_unit)}")
    if current.conditions:
        parts.append(current.conditions)
    if current.wind_speed:
        parts.append(f"Wind: {current.wind_speed}")

    today: ForecastPeriod | None = None
    tomorrow: ForecastPeriod | None = None
    tomorrow_date = (now + datetime.timedelta(days=1)).date()
    for period in forecast:
        if period.start_time is None or period.end_time is None or not period.is_daytime:
            continue
        if period.start_time <= now <= period.end_time:
            today = period
        elif period.start_time > now and today is None:
            today = period
        elif period.start_time > now and tomorrow is None and period.start_time.date() == tomorrow_date:
            tomorrow = period

    if today is None and forecast:
        today = forecast[0]
    if tomorrow is None and len(forecast) > 1:
        tomorrow = forecast[1]

    for period in (today, tomorrow):
        if period is None:
            continue
        high = _format_temperature(period.temperature, period.temperature_unit)
        parts.append(f"{period.name}: {period.short_forecast}, High {high}")

    return ". ".join(parts) or WEATHER_UNAVAILABLE


async def fetch_weather(
    client: httpx.AsyncClient,
    lat: float,
    lng: float,
    point_name: str | None = None,
) -> WeatherReport:
    """Fetch forecast and current conditions; raises FetchError on failure."""
    now = datetime.datetime.now(datetime.UTC)
    grid_point = await get_grid_point(client, lat, lng)
    forecast, current = await asyncio.gather(
        get_forecast(client, grid_point),
        get_current_conditions(client, grid_point, lat, lng, point_name, now=now),
    )

    return WeatherReport(
        summary=generate_weather_summary(current, forecast, now=now),
        grid_point=grid_point,
        current=current,
        # About three to four days
        forecast=forecast[:7],
        fetched_at=now,
    )
