"""Tests for the Redis region-mean cache (route_exposure.cache)."""

from datetime import date

import pytest
from shapely.geometry import box

from route_exposure.cache import redis_client
from route_exposure.cache.keys import region_mean
from route_exposure.config import settings


class FakeRedis:
    def __init__(self, fail=False):
        self.data = {}
        self.ttls = {}
        self.fail = fail

    def get(self, key):
        if self.fail:
            raise OSError("connection reset")
        return self.data.get(key)

    def set(self, key, value, ex=None):
        if self.fail:
            raise OSError("connection reset")
        self.data[key] = value
        self.ttls[key] = ex

    def ping(self):
        if self.fail:
            raise OSError("connection reset")
        return True


@pytest.fixture
def fake(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(redis_client, "get_redis", lambda: client)
    return client


class TestRegionMeanCache:
    def test_value_round_trip(self, fake):
        redis_client.set_region_mean("k", 0.125, 60)
        assert fake.ttls["k"] == 60
        assert redis_client.get_region_mean("k") == (True, 0.125)

    def test_nodata_is_a_hit(self, fake):
        redis_client.set_region_mean("k", None, 60)
        assert fake.data["k"] == redis_client.NODATA
        assert redis_client.get_region_mean("k") == (True, None)

    def test_missing_key(self, fake):
        assert redis_client.get_region_mean("absent") == (False, None)

    def test_unreadable_entry_is_a_miss(self, fake):
        fake.data["k"] = '{"v": 1}'
        assert redis_client.get_region_mean("k") == (False, None)

    def test_redis_errors_are_misses(self, monkeypatch):
        client = FakeRedis(fail=True)
        monkeypatch.setattr(redis_client, "get_redis", lambda: client)
        redis_client.set_region_mean("k", 1.0, 60)
        assert client.data == {}
        assert redis_client.get_region_mean("k") == (False, None)
        assert redis_client.redis_healthy() is False


class TestConnection:
    def test_no_url_means_no_cache(self, monkeypatch):
        monkeypatch.setattr(settings, "redis_url", "")
        monkeypatch.setattr(redis_client, "_redis_checked", False)
        monkeypatch.setattr(redis_client, "_redis_client", None)
        assert redis_client.get_redis() is None
        assert redis_client.redis_healthy() is False
        assert redis_client.get_region_mean("k") == (False, None)

    def test_healthy(self, fake):
        assert redis_client.redis_healthy() is True


class TestKeys:
    def test_window_changes_key(self):
        region = box(0, 0, 0.001, 0.001)
        may = region_mean("a", "b", region, 30.0, date(2023, 5, 1), date(2023, 6, 30))
        july = region_mean("a", "b", region, 30.0, date(2023, 7, 1), date(2023, 8, 31))
        assert may != july
        assert may == region_mean("a", "b", region, 30.0, date(2023, 5, 1), date(2023, 6, 30))

    def test_scale_changes_key(self):
        region = box(0, 0, 0.001, 0.001)
        assert region_mean("a", "b", region, 30.0) != region_mean("a", "b", region, 60.0)
