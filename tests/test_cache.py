"""Tests for the statistics cache."""

from datetime import timedelta

import pytest

from pkgtrend.cache import StatisticsCache


class CountingLoader:
    def __init__(self):
        self.calls = []

    def __call__(self, package_id):
        self.calls.append(package_id)
        return f"stats-{len(self.calls)}"


@pytest.fixture
def loader():
    return CountingLoader()


class TestStatisticsCache:
    """Tests for StatisticsCache."""

    def test_miss_loads_and_stores(self, loader, clock):
        cache = StatisticsCache(loader, clock=clock)

        assert cache.get("Sample.Package") == "stats-1"
        assert len(cache) == 1
        assert loader.calls == ["Sample.Package"]

    def test_hit_within_window(self, loader, clock):
        cache = StatisticsCache(loader, expiration=timedelta(minutes=15), clock=clock)
        cache.get("Sample.Package")

        clock.advance(timedelta(minutes=14, seconds=59))

        assert cache.get("Sample.Package") == "stats-1"
        assert len(loader.calls) == 1

    def test_expired_entry_is_reloaded(self, loader, clock):
        cache = StatisticsCache(loader, expiration=timedelta(minutes=15), clock=clock)
        cache.get("Sample.Package")

        clock.advance(timedelta(minutes=15))

        assert cache.get("Sample.Package") == "stats-2"
        assert len(cache) == 1

    def test_key_is_case_insensitive(self, loader, clock):
        cache = StatisticsCache(loader, clock=clock)
        cache.get("Sample.Package")

        assert cache.get("SAMPLE.PACKAGE") == "stats-1"
        assert len(loader.calls) == 1

    def test_zero_expiration_disables_caching(self, loader, clock):
        cache = StatisticsCache(loader, expiration=timedelta(0), clock=clock)

        cache.get("Sample.Package")
        cache.get("Sample.Package")

        assert len(loader.calls) == 2

    def test_loader_errors_propagate_and_are_not_cached(self, clock):
        def failing(package_id):
            raise RuntimeError("registry down")

        cache = StatisticsCache(failing, clock=clock)

        with pytest.raises(RuntimeError):
            cache.get("Sample.Package")
        assert len(cache) == 0

    def test_clear(self, loader, clock):
        cache = StatisticsCache(loader, clock=clock)
        cache.get("a")
        cache.get("b")

        cache.clear()

        assert len(cache) == 0
        assert cache.get("a") == "stats-3"
