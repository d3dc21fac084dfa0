"""In-process locks keyed by tournament id.

Serialises state-changing calls on one tournament while different
tournaments proceed in parallel.
"""
import threading
from contextlib import contextmanager
from typing import Dict


class TournamentLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.RLock] = {}

    def lock_for(self, tournament_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(tournament_id)
            if lock is None:
                lock = self._locks[tournament_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, tournament_id: int):
        lock = self.lock_for(tournament_id)
        with lock:
            yield


default_locks = TournamentLocks()
