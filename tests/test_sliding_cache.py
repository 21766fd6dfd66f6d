"""Tests for the sliding expiration cache."""

from sliding_cache import SlidingExpirationCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_get_missing_key():
    assert SlidingExpirationCache(60).get("sub-1") is None


def test_entry_expires_after_ttl_without_reads():
    clock = FakeClock()
    cache = SlidingExpirationCache(60, clock=clock)
    cache.set("sub-1", "tenant-1")

    clock.now = 61
    assert cache.get("sub-1") is None
    assert len(cache) == 0


def test_reads_slide_the_expiration():
    clock = FakeClock()
    cache = SlidingExpirationCache(60, clock=clock)
    cache.set("sub-1", "tenant-1")

    for step in (50, 100, 150):
        clock.now = step
        assert cache.get("sub-1") == "tenant-1"

    clock.now = 211
    assert "sub-1" not in cache


def test_set_overwrites():
    cache = SlidingExpirationCache(60)
    cache.set("sub-1", "a")
    cache.set("sub-1", "b")
    assert cache.get("sub-1") == "b"
    assert len(cache) == 1
