"""In-process serialization of writes to a single schedule."""

from __future__ import annotations

import threading
from typing import Dict, Hashable, Tuple


class ScheduleLocks:
    """
    Registry of re-entrant locks keyed by schedule id or (group, month, year).

    Two builds of the same schedule never run at the same time; builds of
    different schedules do not block each other. Materialization takes the
    month key because the schedule row may not exist yet.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.RLock] = {}

    def _get(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def for_schedule(self, schedule_id: int) -> threading.RLock:
        return self._get(("schedule", schedule_id))

    def for_month(self, group_id: int, month: int, year: int) -> threading.RLock:
        key: Tuple[str, int, int, int] = ("month", group_id, month, year)
        return self._get(key)

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every entry point of this process
default_locks = ScheduleLocks()
