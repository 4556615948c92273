import time

from safequery.cache import SchemaCache


def test_cache_hit_and_miss():
    cache = SchemaCache(ttl_minutes=1)

    assert cache.get("conn-1") is None

    cache.set("conn-1", {"formatted": "x"})
    assert cache.get("conn-1") == {"formatted": "x"}


def test_cache_respects_ttl(monkeypatch):
    """
    Entries expire after the TTL.
    Time is controlled explicitly instead of sleeping.
    """
    fake_now = 1000.0

    def fake_time():
        return fake_now

    monkeypatch.setattr(time, "time", fake_time)

    cache = SchemaCache(ttl_minutes=2)
    cache.set("conn-1", "schema")

    fake_now += 119.0
    assert cache.get("conn-1") == "schema"

    fake_now += 2.0
    assert cache.get("conn-1") is None
    assert cache.stats()["total_entries"] == 0


def test_invalidate_and_clear():
    cache = SchemaCache()
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    assert cache.get("a") is None

    assert cache.clear() == 1
    assert cache.get("b") is None


def test_sweep_removes_only_expired(monkeypatch):
    fake_now = 5000.0
    monkeypatch.setattr(time, "time", lambda: fake_now)

    cache = SchemaCache(ttl_minutes=1)
    cache.set("old", "x")

    fake_now += 50.0
    cache.set("new", "y")

    fake_now += 20.0
    stats = cache.stats()
    assert stats["total_entries"] == 2
    assert stats["expired_entries"] == 1
    assert stats["valid_entries"] == 1
    assert stats["oldest_entry"] == 5000.0
    assert stats["newest_entry"] == 5050.0

    assert cache.sweep() == 1
    assert cache.get("new") == "y"
    assert cache.stats()["total_entries"] == 1


def test_stats_on_empty_cache():
    stats = SchemaCache().stats()
    assert stats == {
        "total_entries": 0,
        "valid_entries": 0,
        "expired_entries": 0,
        "oldest_entry": None,
        "newest_entry": None,
    }


def test_instances_are_isolated():
    first, second = SchemaCache(), SchemaCache()
    first.set("conn", "a")
    assert second.get("conn") is None


def test_sweep_thread_lifecycle():
    cache = SchemaCache(sweep_minutes=0.001)
    with cache:
        assert cache.running
        cache.start()
        assert cache.running
    assert not cache.running


def test_background_sweep_evicts(monkeypatch):
    cache = SchemaCache(ttl_minutes=0, sweep_minutes=0.0005)
    cache.set("conn", "x")
    swept = []
    original = cache.sweep

    def recording_sweep():
        removed = original()
        swept.append(removed)
        return removed

    monkeypatch.setattr(cache, "sweep", recording_sweep)
    cache.start()
    try:
        deadline = time.monotonic() + 5
        while not swept and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        cache.stop()

    assert swept and swept[0] == 1
