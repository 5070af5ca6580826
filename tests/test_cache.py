import pytest

from app.core.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def test_get_returns_stored_value(clock):
    cache = TTLCache(max_entries=3, ttl_seconds=60, clock=clock)
    rows = [{"id": 1}]
    cache.set("sql:SELECT 1", rows)

    assert cache.get("sql:SELECT 1") is rows
    assert "sql:SELECT 1" in cache
    assert cache.get("missing") is None


def test_entry_expires_after_ttl_even_when_read(clock):
    cache = TTLCache(max_entries=3, ttl_seconds=300, clock=clock)
    cache.set("k", "v")

    clock.now = 200
    assert cache.get("k") == "v"

    clock.now = 300
    assert cache.get("k") is None
    assert "k" not in cache
    assert len(cache) == 0


def test_overwrite_restarts_ttl(clock):
    cache = TTLCache(max_entries=3, ttl_seconds=10, clock=clock)
    cache.set("k", "old")
    clock.now = 8
    cache.set("k", "new")
    clock.now = 15

    assert cache.get("k") == "new"


def test_evicts_least_recently_used(clock):
    cache = TTLCache(max_entries=2, ttl_seconds=60, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    # Touch "a" so "b" becomes the oldest
    assert cache.get("a") == 1
    cache.set("c", 3)

    assert len(cache) == 2
    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_clear(clock):
    cache = TTLCache(max_entries=2, ttl_seconds=60, clock=clock)
    cache.set("a", 1)
    cache.clear()

    assert len(cache) == 0
    assert cache.get("a") is None


@pytest.mark.parametrize("max_entries, ttl", [(0, 60), (10, 0)])
def test_rejects_invalid_bounds(max_entries, ttl):
    with pytest.raises(ValueError):
        TTLCache(max_entries=max_entries, ttl_seconds=ttl)
