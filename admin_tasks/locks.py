"""Per-admin locks serializing task list read-modify-write cycles."""

import threading
from typing import Dict


class AdminLocks:
    """Hands out one re-entrant lock per admin id.

    The guard and the overdue scanner share a registry so that assignment,
    cancellation and scanner transitions for the same admin never interleave.
    """

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, admin_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(admin_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[admin_id] = lock
            return lock
