"""
History Manager for CalcuSolve
Keeps the bounded, newest-first list of completed calculations
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

import config

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class HistoryEntry:
    """One completed calculation."""
    expression: str
    result: str
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_row(cls, row):
        """Build an entry from an (expression, result, timestamp) database row"""
        expression, result, timestamp = row[:3]
        return cls(expression, result, datetime.strptime(timestamp, TIMESTAMP_FORMAT))

    def to_dict(self):
        return {
            'expression': self.expression,
            'result': self.result,
            'timestamp': self.timestamp.strftime(TIMESTAMP_FORMAT),
        }

    def __str__(self):
        return f"{self.expression} = {self.result}"


class HistoryCache:
    """Newest-first list of entries that never grows past ``limit``."""

    def __init__(self, limit=config.DEFAULT_HISTORY_LIMIT):
        self._entries = []
        self.limit = _check_limit(limit)

    def append(self, entry):
        self._entries.insert(0, entry)
        del self._entries[self.limit:]

    def clear(self):
        self._entries.clear()

    def list(self):
        return tuple(self._entries)

    def set_limit(self, limit):
        """Change the bound and drop the oldest entries above it right away."""
        self.limit = _check_limit(limit)
        del self._entries[self.limit:]

    def __len__(self):
        return len(self._entries)


def _check_limit(limit):
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"History limit must be a positive integer, got {limit!r}")
    return limit


class HistoryManager:
    """Session history: the in-memory cache plus an optional persistent store.

    The cache is always updated first. Store calls are scheduled afterwards
    and their failures are logged and passed to ``on_error``; they never
    touch the cache.
    """

    def __init__(self, cache=None, store=None, on_error=None):
        self.cache = cache if cache is not None else HistoryCache()
        self.store = store
        self.on_error = on_error

    def load(self, timeout=config.HISTORY_LOAD_TIMEOUT):
        """Fill the cache from the store, oldest entries first"""
        if self.store is None:
            return False
        try:
            entries = self.store.fetch_entries(self.cache.limit).result(timeout=timeout)
        except Exception as e:
            logger.error(f"Failed to load calculation history: {e}")
            self._report("Failed to load calculation history")
            return False

        self.cache.clear()
        for entry in reversed(entries):
            self.cache.append(entry)
        return True

    def add_calculation(self, entry):
        """Add a calculation to history"""
        self.cache.append(entry)
        if self.store is not None:
            return self._watch(self.store.persist_entry(entry), "save calculation")
        return None

    def get_calculation_history(self):
        """Get calculation history, newest first"""
        return self.cache.list()

    def clear_calculation_history(self):
        """Clear all calculation history"""
        self.cache.clear()
        if self.store is not None:
            return self._watch(self.store.clear_persisted(), "clear saved history")
        return None

    def set_limit(self, limit):
        self.cache.set_limit(limit)

    def format_calculation_history(self):
        """Format calculation history for display"""
        return [
            f"{entry.timestamp.strftime(TIMESTAMP_FORMAT)}: {entry}"
            for entry in self.cache.list()
        ]

    def _watch(self, future, action):
        def _done(f):
            if f.cancelled():
                logger.warning(f"Cancelled: {action}")
                return
            error = f.exception()
            if error is not None:
                logger.error(f"Failed to {action}: {error}")
                self._report(f"Failed to {action}")

        future.add_done_callback(_done)
        return future

    def _report(self, message):
        if self.on_error is not None:
            self.on_error(message)
