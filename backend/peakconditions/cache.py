from __future__ import annotations

import json
from typing import Any

from redis.asyncio import Redis

from peakconditions.config.settings import settings


def _get_client() -> Redis:
    return Redis.from_url(settings.redis_url)


async def get_payload(cache_key: str) -> Any | None:
    try:
        async with _get_client() as client:
            raw = await client.get(cache_key)
    except Exception:
        return None

    if not raw:
        return None

    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None


async def set_payload(cache_key: str, payload: Any, ttl_seconds: int) -> None:
    try:
        async with _get_client() as client:
            await client.setex(cache_key, ttl_seconds, json.dumps(payload))
    except Exception:
        return None
