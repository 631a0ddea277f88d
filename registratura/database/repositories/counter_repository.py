from typing import Any

import psycopg

from registratura.database.connection import get_connection
from registratura.database.models import CounterKey
from registratura.numbering.base import BaseCounterStore
from registratura.numbering.exceptions import AllocationError


class PostgresCounterStore(BaseCounterStore):
    """Database operations for the number_counters table.

    The upsert both creates a missing counter and increments an existing one
    in a single statement; PostgreSQL holds the row lock until the caller's
    transaction ends, so concurrent callers on one key are serialized while
    other keys proceed in parallel.
    """

    def next_value(self, conn: psycopg.Connection[Any] | None, key: CounterKey) -> int:
        if conn is None:
            with get_connection() as own_conn:
                value = self._upsert(own_conn, key)
                own_conn.commit()
                return value
        return self._upsert(conn, key)

    def current_value(self, key: CounterKey) -> int:
        """Read the last allocated value for a key; 0 when never allocated."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT current_value
                    FROM number_counters
                    WHERE organization_id = %s AND year = %s AND document_class = %s
                    """,
                    (key.organization_id, key.year, key.document_class.value),
                )
                row = cur.fetchone()
        return 0 if row is None else int(row[0])

    def _upsert(self, conn: psycopg.Connection[Any], key: CounterKey) -> int:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO number_counters
                    (organization_id, year, document_class, current_value)
                VALUES (%s, %s, %s, 1)
                ON CONFLICT (organization_id, year, document_class)
                DO UPDATE SET current_value = number_counters.current_value + 1,
                              updated_at = NOW()
                RETURNING current_value
                """,
                (key.organization_id, key.year, key.document_class.value),
            )
            row = cur.fetchone()
        if row is None:
            raise AllocationError(
                f"Counter upsert returned no row for {key.organization_id}/"
                f"{key.year}/{key.document_class.value}"
            )
        return int(row[0])
