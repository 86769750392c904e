"""
Per-key mutual exclusion for stock movements
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable


class KeyLockRegistry:
    """
    Hands out one lock per stock key.

    Movements on the same (product_id, warehouse_id) run one at a time;
    movements on different keys never wait on each other.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: Hashable):
        lock = self.lock_for(key)
        with lock:
            yield

    def __len__(self):
        with self._guard:
            return len(self._locks)
