"""Shared httpx helpers that translate transport failures into FetchError types."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from peakconditions.providers.errors import (
    FetchTimeoutError,
    NotFoundError,
    UnavailableError,
)


def build_client(timeout: float = 30.0) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: Optional[dict] = None,
    json_body: Optional[dict] = None,
    timeout: float = 30.0,
) -> Any:
    try:
        async with asyncio.timeout(timeout):
            response = await client.request(method, url, headers=headers, json=json_body, timeout=timeout)
    except (TimeoutError, httpx.TimeoutException) as exc:
        raise FetchTimeoutError(f"Request timeout after {timeout:g}s: {url}", url=url) from exc
    except httpx.HTTPError as exc:
        raise UnavailableError(f"Request failed for {url}: {exc}", url=url) from exc

    if response.status_code in (404, 410):
        raise NotFoundError(f"{url} returned {response.status_code}", url=url)
    if response.status_code == 408:
        raise FetchTimeoutError(f"{url} returned 408", url=url)
    if response.is_error:
        raise UnavailableError(f"{url} returned {response.status_code}", url=url)

    try:
        return response.json()
    except ValueError as exc:
        raise UnavailableError(f"Invalid JSON from {url}", url=url) from exc


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    headers: Optional[dict] = None,
    timeout: float = 30.0,
) -> Any:
    return await request_json(client, "GET", url, headers=headers, timeout=timeout)
