import asyncio

from peakconditions.cache import get_payload, set_payload


def test_cache_roundtrip(fake_redis) -> None:
    payload = {"features": [{"properties": {"route": "SR-2"}}]}

    asyncio.run(set_payload("caltrans:closures:test", payload, ttl_seconds=123))
    cached = asyncio.run(get_payload("caltrans:closures:test"))

    assert cached == payload
    assert fake_redis.expirations["caltrans:closures:test"] == 123


def test_cache_miss_and_garbage(fake_redis) -> None:
    fake_redis.store["broken"] = "{not json"

    assert asyncio.run(get_payload("missing")) is None
    assert asyncio.run(get_payload("broken")) is None


def test_cache_errors_are_swallowed(monkeypatch) -> None:
    def unavailable():
        raise ConnectionError("redis down")

    monkeypatch.setattr("peakconditions.cache._get_client", unavailable)

    assert asyncio.run(get_payload("anything")) is None
    asyncio.run(set_payload("anything", {"a": 1}, ttl_seconds=10))
