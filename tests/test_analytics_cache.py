import threading
import time

import pytest

from hyrepro.services.analytics_cache import AnalyticsCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.005)


def test_hit_within_ttl_and_reload_after_expiry():
    clock = FakeClock()
    cache = AnalyticsCache(ttl=300, max_entries=10, clock=clock)
    calls = []

    def loader():
        calls.append(clock.now)
        return {"loaded_at": clock.now}

    assert cache.get_or_load("s1-week", loader) == {"loaded_at": 0.0}
    clock.now = 299.0
    assert cache.get_or_load("s1-week", loader) == {"loaded_at": 0.0}
    clock.now = 300.0
    assert cache.get_or_load("s1-week", loader) == {"loaded_at": 300.0}
    assert calls == [0.0, 300.0]


def test_least_recently_used_entry_is_evicted():
    cache = AnalyticsCache(ttl=300, max_entries=2, clock=FakeClock())
    cache.get_or_load("a", lambda: 1)
    cache.get_or_load("b", lambda: 2)
    cache.get_or_load("a", lambda: 99)  # touch a
    cache.get_or_load("c", lambda: 3)

    assert len(cache) == 2
    assert cache.get("a") == 1
    assert cache.get("b") is None
    assert cache.get("c") == 3


def test_max_entries_must_be_positive():
    with pytest.raises(ValueError):
        AnalyticsCache(max_entries=0)


def test_failed_load_is_not_cached():
    cache = AnalyticsCache(ttl=300, clock=FakeClock())

    def broken():
        raise RuntimeError("db down")

    with pytest.raises(RuntimeError):
        cache.get_or_load("s1-week", broken)

    assert cache.get_or_load("s1-week", lambda: "ok") == "ok"
    assert cache.stats()["in_flight"] == 0


def test_concurrent_misses_share_one_load():
    cache = AnalyticsCache(ttl=300)
    release = threading.Event()
    calls = []

    def slow_loader():
        calls.append(1)
        release.wait(2)
        return "analytics"

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(cache.get_or_load("s1-month", slow_loader)))
        for _ in range(4)
    ]
    threads[0].start()
    wait_until(lambda: cache.stats()["in_flight"] == 1)
    for thread in threads[1:]:
        thread.start()
    wait_until(lambda: cache.stats()["misses"] == 4)
    release.set()
    for thread in threads:
        thread.join(2)

    assert results == ["analytics"] * 4
    assert len(calls) == 1
    assert cache.stats()["loads"] == 1


def test_waiters_see_the_leader_failure():
    cache = AnalyticsCache(ttl=300)
    release = threading.Event()
    errors = []

    def failing_loader():
        release.wait(2)
        raise RuntimeError("procedure failed")

    def worker():
        try:
            cache.get_or_load("s1-day", failing_loader)
        except RuntimeError as e:
            errors.append(str(e))

    leader = threading.Thread(target=worker)
    leader.start()
    wait_until(lambda: cache.stats()["in_flight"] == 1)
    waiter = threading.Thread(target=worker)
    waiter.start()
    wait_until(lambda: cache.stats()["misses"] == 2)
    release.set()
    leader.join(2)
    waiter.join(2)

    assert errors == ["procedure failed", "procedure failed"]
    assert len(cache) == 0


def test_invalidate_prefix_only_drops_that_school():
    cache = AnalyticsCache(ttl=300, clock=FakeClock())
    for key in ("s1-day", "s1-week", "s2-week"):
        cache.get_or_load(key, lambda: key)

    assert cache.invalidate_prefix("s1-") == 2
    assert cache.get("s1-day") is None
    assert cache.get("s2-week") == "s2-week"


def test_invalidate_during_load_discards_result():
    cache = AnalyticsCache(ttl=300, clock=FakeClock())

    def loader():
        cache.invalidate("s1-week")
        return "stale"

    assert cache.get_or_load("s1-week", loader) == "stale"
    assert cache.get("s1-week") is None


def test_failed_load_keeps_value_stored_by_newer_load():
    cache = AnalyticsCache(ttl=300, clock=FakeClock())

    def superseded_loader():
        cache.invalidate("s1-week")
        assert cache.get_or_load("s1-week", lambda: "fresh") == "fresh"
        raise RuntimeError("procedure failed")

    with pytest.raises(RuntimeError):
        cache.get_or_load("s1-week", superseded_loader)

    assert cache.get("s1-week") == "fresh"
