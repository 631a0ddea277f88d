from collections.abc import Sequence
from typing import Any

import psycopg

from registratura.database.connection import get_connection
from registratura.database.ids import is_valid_id, normalize_id
from registratura.directory.base import BaseUserDirectory


class UserDirectoryRepository(BaseUserDirectory):
    """Read-only queries against the users and user_permissions tables."""

    def list_active(
        self, ids: Sequence[str], conn: psycopg.Connection[Any] | None = None
    ) -> list[str]:
        candidates = list(
            dict.fromkeys(normalize_id(actor_id) for actor_id in ids if is_valid_id(actor_id))
        )
        if not candidates:
            return []
        if conn is not None:
            rows = self._select_active(conn, candidates)
        else:
            with get_connection() as own_conn:
                rows = self._select_active(own_conn, candidates)
        active = {str(row[0]) for row in rows}
        return [actor_id for actor_id in candidates if actor_id in active]

    def has_permission(
        self,
        actor_id: str,
        permission: str,
        conn: psycopg.Connection[Any] | None = None,
    ) -> bool:
        if not is_valid_id(actor_id):
            return False
        if conn is not None:
            return self._select_permission(conn, actor_id, permission)
        with get_connection() as own_conn:
            return self._select_permission(own_conn, actor_id, permission)

    def _select_active(
        self, conn: psycopg.Connection[Any], candidates: list[str]
    ) -> list[Any]:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT id FROM users WHERE id = ANY(%s::uuid[]) AND is_active",
                (candidates,),
            )
            return cur.fetchall()

    def _select_permission(
        self, conn: psycopg.Connection[Any], actor_id: str, permission: str
    ) -> bool:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT 1
                FROM user_permissions AS p
                JOIN users AS u ON u.id = p.user_id
                WHERE p.user_id = %s AND p.permission = %s AND u.is_active
                """,
                (actor_id, permission),
            )
            return cur.fetchone() is not None
