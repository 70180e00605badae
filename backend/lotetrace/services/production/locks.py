"""
Per-lote serialization of movement operations within one process
"""
import threading
from contextlib import contextmanager
from typing import Dict


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class LoteLockRegistry:
    """
    One lock per lote id, alive only while some thread holds or waits for it.

    The entry is dropped when its last user leaves, so the registry size is
    bounded by the number of lotes being moved concurrently.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, _LockEntry] = {}

    def _acquire_entry(self, lote_id: int) -> _LockEntry:
        with self._guard:
            entry = self._locks.get(lote_id)
            if entry is None:
                entry = _LockEntry()
                self._locks[lote_id] = entry
            entry.users += 1
            return entry

    def _release_entry(self, lote_id: int, entry: _LockEntry):
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[lote_id]

    @contextmanager
    def hold(self, lote_id: int):
        entry = self._acquire_entry(lote_id)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(lote_id, entry)

    def __len__(self):
        with self._guard:
            return len(self._locks)


lote_locks = LoteLockRegistry()
