"""
Run-scoped bookkeeping shared by every task: seen identity keys and the accepted-record quota.
Both are safe to share between worker threads.
"""
import threading
from typing import Set


class Deduplicator:
    """Process-lifetime set of identity keys; grows monotonically during a run."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self._lock = threading.Lock()

    def accept(self, key: str) -> bool:
        """Return True if the key is new (and record it), False for a duplicate."""
        if not key:
            raise ValueError("Identity key must be non-empty")
        with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            return True

    def seen_count(self) -> int:
        with self._lock:
            return len(self._seen)


class QuotaTracker:
    """Counts accepted records against max_items."""

    def __init__(self, max_items: int) -> None:
        if max_items < 1:
            raise ValueError("max_items must be a positive integer")
        self.max_items = max_items
        self._accepted = 0
        self._lock = threading.Lock()

    @property
    def accepted_count(self) -> int:
        with self._lock:
            return self._accepted

    def remaining(self) -> int:
        with self._lock:
            return self.max_items - self._accepted

    def is_exhausted(self) -> bool:
        return self.remaining() <= 0

    def try_acquire(self) -> bool:
        """Atomically reserve one slot; False once the quota is used up."""
        with self._lock:
            if self._accepted >= self.max_items:
                return False
            self._accepted += 1
            return True
