from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import psycopg


class BaseUserDirectory(ABC):
    """Contract for the user directory owned by the surrounding application.

    Callers that already hold a pooled connection (for example inside a
    locked update transaction) pass it as ``conn`` so that the lookup does
    not take a second connection from the pool.
    """

    @abstractmethod
    def list_active(
        self, ids: Sequence[str], conn: psycopg.Connection[Any] | None = None
    ) -> list[str]:
        """Return the subset of ``ids`` that exist and are active, in input order."""

    @abstractmethod
    def has_permission(
        self,
        actor_id: str,
        permission: str,
        conn: psycopg.Connection[Any] | None = None,
    ) -> bool:
        """Return True when the actor holds the named capability."""
