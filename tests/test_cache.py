"""Unit tests for utils.cache."""

import threading

import pytest

from pattern_bot.utils.cache import TTLCache


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_serves_fresh_value():
    clock = Clock()
    cache = TTLCache(10, clock=clock)
    calls = []
    assert cache.get_or_load("k", lambda: calls.append(1) or "v") == "v"
    clock.now = 9.0
    assert cache.get_or_load("k", lambda: calls.append(1) or "w") == "v"
    assert len(calls) == 1


def test_never_serves_stale_value():
    clock = Clock()
    cache = TTLCache(10, clock=clock)
    cache.get_or_load("k", lambda: "old")
    clock.now = 10.0
    assert cache.get_or_load("k", lambda: "new") == "new"


def test_loader_error_stores_nothing():
    cache = TTLCache(10)

    def boom():
        raise RuntimeError("down")

    with pytest.raises(RuntimeError):
        cache.get_or_load("k", boom)
    assert len(cache) == 0


def test_clear_expired_and_invalidate():
    clock = Clock()
    cache = TTLCache(10, clock=clock)
    cache.get_or_load("a", lambda: 1)
    clock.now = 5.0
    cache.get_or_load("b", lambda: 2)
    clock.now = 12.0
    assert cache.clear_expired() == 1
    assert len(cache) == 1
    assert cache.get_or_load("b", lambda: 3) == 2
    cache.invalidate("b")
    assert len(cache) == 0


def test_concurrent_callers_load_once():
    cache = TTLCache(60)
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_loader():
        calls.append(1)
        started.set()
        release.wait(2)
        return "value"

    results = []
    threads = [threading.Thread(target=lambda: results.append(cache.get_or_load("k", slow_loader))) for _ in range(4)]
    threads[0].start()
    started.wait(2)
    for t in threads[1:]:
        t.start()
    release.set()
    for t in threads:
        t.join(5)
    assert results == ["value"] * 4
    assert len(calls) == 1
