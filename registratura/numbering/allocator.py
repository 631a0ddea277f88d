from typing import Any

import psycopg

from registratura.database.models import CounterKey, DocumentClass
from registratura.logging.logger import Log
from registratura.numbering.base import BaseCounterStore


class NumberAllocator:
    """Hands out permanently unique registration numbers per scope."""

    def __init__(self, store: BaseCounterStore) -> None:
        self._store = store

    def allocate(
        self,
        organization_id: str,
        document_class: DocumentClass,
        year: int,
        conn: psycopg.Connection[Any] | None = None,
    ) -> tuple[int, str]:
        """Return the next sequence number for the scope and its display form.

        When ``conn`` is given the increment joins the caller's transaction,
        so a rolled back registration does not consume the number.
        """
        key = CounterKey(
            organization_id=organization_id,
            year=year,
            document_class=DocumentClass(document_class),
        )
        number = self._store.next_value(conn, key)
        formatted = f"{number}/{year}"
        Log.debug(f"Allocated number {formatted} for {organization_id}/{key.document_class.value}")
        return number, formatted
