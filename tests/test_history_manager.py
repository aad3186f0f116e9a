from concurrent.futures import Future
from datetime import datetime

import pytest

from history_manager import HistoryCache, HistoryEntry, HistoryManager


def entry(n):
    return HistoryEntry(f"{n} + 0", str(n), datetime(2024, 1, 1, 12, 0, n))


def done(value=None, error=None):
    future = Future()
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(value)
    return future


class FakeStore:
    def __init__(self, entries=(), fail=False):
        self.entries = list(entries)
        self.fail = fail
        self.saved = []
        self.cleared = False

    def persist_entry(self, item):
        if self.fail:
            return done(error=RuntimeError("store offline"))
        self.saved.append(item)
        return done()

    def fetch_entries(self, limit):
        if self.fail:
            return done(error=RuntimeError("store offline"))
        return done(self.entries[:limit])

    def clear_persisted(self):
        if self.fail:
            return done(error=RuntimeError("store offline"))
        self.cleared = True
        return done()


def test_cache_defaults_to_ten_entries():
    cache = HistoryCache()
    for n in range(12):
        cache.append(entry(n))
    assert cache.limit == 10
    assert len(cache) == 10


def test_cache_keeps_most_recent_newest_first():
    cache = HistoryCache(limit=3)
    for n in range(4):
        cache.append(entry(n))
    assert [e.result for e in cache.list()] == ["3", "2", "1"]


def test_cache_clear():
    cache = HistoryCache()
    cache.append(entry(1))
    cache.clear()
    assert cache.list() == ()


def test_cache_list_is_read_only_copy():
    cache = HistoryCache()
    cache.append(entry(1))
    snapshot = cache.list()
    cache.append(entry(2))
    assert len(snapshot) == 1


def test_lowering_limit_truncates_immediately():
    cache = HistoryCache(limit=5)
    for n in range(5):
        cache.append(entry(n))
    cache.set_limit(2)
    assert [e.result for e in cache.list()] == ["4", "3"]


def test_raising_limit_keeps_entries():
    cache = HistoryCache(limit=2)
    for n in range(2):
        cache.append(entry(n))
    cache.set_limit(4)
    cache.append(entry(9))
    assert len(cache) == 3


@pytest.mark.parametrize("limit", [0, -1, 2.5, True, "10"])
def test_invalid_limit_rejected(limit):
    with pytest.raises(ValueError):
        HistoryCache(limit=limit)


def test_entry_is_immutable():
    item = entry(1)
    with pytest.raises(AttributeError):
        item.result = "2"


def test_entry_round_trips_through_row():
    item = entry(7)
    row = (item.expression, item.result, item.to_dict()['timestamp'])
    assert HistoryEntry.from_row(row) == item


def test_manager_without_store_is_memory_only():
    manager = HistoryManager()
    assert manager.add_calculation(entry(1)) is None
    assert manager.get_calculation_history() == (entry(1),)
    assert manager.load() is False


def test_manager_writes_through_to_store():
    store = FakeStore()
    manager = HistoryManager(store=store)
    manager.add_calculation(entry(1))
    manager.clear_calculation_history()
    assert store.saved == [entry(1)]
    assert store.cleared is True
    assert manager.get_calculation_history() == ()


def test_store_failure_is_reported_and_memory_kept():
    errors = []
    manager = HistoryManager(store=FakeStore(fail=True), on_error=errors.append)
    manager.add_calculation(entry(1))

    assert manager.get_calculation_history() == (entry(1),)
    assert errors == ["Failed to save calculation"]


def test_load_fills_cache_newest_first():
    store = FakeStore([entry(3), entry(2), entry(1)])
    manager = HistoryManager(HistoryCache(limit=2), store=store)
    assert manager.load() is True
    assert [e.result for e in manager.get_calculation_history()] == ["3", "2"]


def test_load_failure_is_reported():
    errors = []
    manager = HistoryManager(store=FakeStore(fail=True), on_error=errors.append)
    assert manager.load() is False
    assert errors == ["Failed to load calculation history"]


def test_format_calculation_history():
    manager = HistoryManager()
    manager.add_calculation(entry(5))
    assert manager.format_calculation_history() == ["2024-01-01 12:00:05: 5 + 0 = 5"]
