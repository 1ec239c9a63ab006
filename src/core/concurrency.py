"""
Per-key locking.

Used wherever a read-modify-write must be serialized for one key (a user's
topic, a content item's embedding) while unrelated keys proceed in parallel.
"""

from __future__ import annotations

import threading
import weakref
from typing import Hashable


class KeyedLocks:
    """
    One lock per key, created on demand. Different keys never contend.

    Locks are held weakly: a key's lock lives only while some caller holds a
    reference to it, so idle keys do not accumulate.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[Hashable, threading.Lock] = weakref.WeakValueDictionary()

    def __call__(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
