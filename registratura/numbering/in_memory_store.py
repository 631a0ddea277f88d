import threading
from typing import Any

import psycopg

from registratura.database.models import CounterKey
from registratura.numbering.base import BaseCounterStore


class InMemoryCounterStore(BaseCounterStore):
    """Process-local counters serialized through one writer lock per key.

    Used when the backing store cannot lock a single counter row. Distinct
    keys never wait on each other; the registry lock is only held while the
    per-key lock is looked up.
    """

    def __init__(self) -> None:
        self._values: dict[CounterKey, int] = {}
        self._locks: dict[CounterKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def next_value(self, conn: psycopg.Connection[Any] | None, key: CounterKey) -> int:
        _ = conn
        with self._lock_for(key):
            value = self._values.get(key, 0) + 1
            self._values[key] = value
            return value

    def current_value(self, key: CounterKey) -> int:
        with self._lock_for(key):
            return self._values.get(key, 0)

    def _lock_for(self, key: CounterKey) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock
