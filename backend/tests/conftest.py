import pytest

from fakes import FakeRedis


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr("peakconditions.cache._get_client", lambda: fake)
    return fake
