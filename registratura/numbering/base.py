from abc import ABC, abstractmethod
from typing import Any

import psycopg

from registratura.database.models import CounterKey


class BaseCounterStore(ABC):
    """Contract for persistent numbering counters."""

    @abstractmethod
    def next_value(self, conn: psycopg.Connection[Any] | None, key: CounterKey) -> int:
        """Atomically increment the counter for ``key`` and return the new value.

        The first call for a key returns 1. Two callers never observe the
        same value for the same key.

        Args:
            conn: Connection of the caller's unit of work. Stores that live
                  outside the database ignore it.
            key: Numbering scope.

        Raises:
            AllocationError: if the increment could not be performed.
        """
