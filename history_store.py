"""
Persistent history for signed-in users.

Every call is queued on an executor and returns a Future, so the session
never waits on the database when it records a calculation.
"""
from concurrent.futures import ThreadPoolExecutor

import config
from history_manager import TIMESTAMP_FORMAT, HistoryEntry


def create_executor():
    """Single worker so writes for a user land in the order they were made"""
    return ThreadPoolExecutor(max_workers=1, thread_name_prefix="history-store")


class HistoryStore:
    def __init__(self, db, user_id, executor, mode=config.DEFAULT_MODE):
        self.db = db
        self.user_id = user_id
        self.executor = executor
        self.mode = mode

    def persist_entry(self, entry):
        return self.executor.submit(
            self.db.add_calculation,
            entry.expression,
            entry.result,
            user_id=self.user_id,
            mode=self.mode,
            timestamp=entry.timestamp.strftime(TIMESTAMP_FORMAT),
        )

    def fetch_entries(self, limit):
        return self.executor.submit(self._fetch, limit)

    def clear_persisted(self):
        return self.executor.submit(self.db.clear_calculations, self.user_id)

    def _fetch(self, limit):
        rows = self.db.get_calculations(user_id=self.user_id, limit=limit)
        return [HistoryEntry.from_row(row) for row in rows]
