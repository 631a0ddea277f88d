from typing import Any

import psycopg
from psycopg.rows import dict_row

from registratura.database.connection import get_connection
from registratura.database.ids import is_valid_id
from registratura.database.models import (
    NewWorkflowStep,
    ResolutionOutcome,
    StepStatus,
    WorkflowAction,
    WorkflowStep,
)

_COLUMNS = """
    id, document_id, parent_step_id, from_actor_id, to_actor_id, action,
    step_status, resolution_outcome, notes, is_expired, completed_at, created_at
"""


class WorkflowStepRepository:
    """Database operations for the workflow_steps table.

    Rows are only ever inserted; the updates below are limited to the
    pending -> completed transition and the expiry flag.
    """

    def insert(self, conn: psycopg.Connection[Any], step: NewWorkflowStep) -> WorkflowStep:
        completed = step.step_status is StepStatus.COMPLETED
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                INSERT INTO workflow_steps
                    (document_id, parent_step_id, from_actor_id, to_actor_id, action,
                     step_status, resolution_outcome, notes, completed_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s,
                        CASE WHEN %s THEN NOW() ELSE NULL END)
                RETURNING {_COLUMNS}
                """,
                (
                    step.document_id,
                    step.parent_step_id,
                    step.from_actor_id,
                    step.to_actor_id,
                    step.action.value,
                    step.step_status.value,
                    step.resolution_outcome.value if step.resolution_outcome else None,
                    step.notes,
                    completed,
                ),
            )
            row = cur.fetchone()
        if row is None:
            raise RuntimeError("Workflow step insert returned no row")
        return _to_step(row)

    def list_by_document(
        self,
        document_id: str,
        conn: psycopg.Connection[Any] | None = None,
    ) -> list[WorkflowStep]:
        """Return the ledger of a document in creation order."""
        if not is_valid_id(document_id):
            return []
        if conn is not None:
            return self._select_by_document(conn, document_id)
        with get_connection() as own_conn:
            return self._select_by_document(own_conn, document_id)

    def has_entries(self, conn: psycopg.Connection[Any], document_id: str) -> bool:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT EXISTS (SELECT 1 FROM workflow_steps WHERE document_id = %s)",
                (document_id,),
            )
            row = cur.fetchone()
        return bool(row and row[0])

    def find_in_document(
        self,
        conn: psycopg.Connection[Any],
        step_id: str,
        document_id: str,
    ) -> WorkflowStep | None:
        if not is_valid_id(step_id):
            return None
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM workflow_steps
                WHERE id = %s AND document_id = %s
                """,
                (step_id, document_id),
            )
            row = cur.fetchone()
        return None if row is None else _to_step(row)

    def pending_recipients(self, conn: psycopg.Connection[Any], document_id: str) -> list[str]:
        """Actor ids holding at least one pending step, in routing order."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT to_actor_id
                FROM workflow_steps
                WHERE document_id = %s
                  AND step_status = 'pending'
                  AND to_actor_id IS NOT NULL
                GROUP BY to_actor_id
                ORDER BY MIN(seq)
                """,
                (document_id,),
            )
            rows = cur.fetchall()
        return [str(row[0]) for row in rows]

    def complete_pending(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        outcome: ResolutionOutcome | None,
        actor_id: str | None = None,
    ) -> int:
        """Complete pending steps of a document, optionally only those held by one actor.

        Returns the number of steps completed.
        """
        query = """
            UPDATE workflow_steps
            SET step_status = 'completed', resolution_outcome = %s, completed_at = NOW()
            WHERE document_id = %s AND step_status = 'pending'
        """
        params: list[Any] = [outcome.value if outcome else None, document_id]
        if actor_id is not None:
            query += " AND to_actor_id = %s"
            params.append(actor_id)
        with conn.cursor() as cur:
            cur.execute(query, params)
            return cur.rowcount

    def mark_expired(self, conn: psycopg.Connection[Any]) -> int:
        """Flag pending steps of documents whose due date has passed."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE workflow_steps AS s
                SET is_expired = TRUE
                FROM documents AS d
                WHERE s.document_id = d.id
                  AND s.step_status = 'pending'
                  AND s.is_expired = FALSE
                  AND d.due_date IS NOT NULL
                  AND d.due_date < CURRENT_DATE
                """
            )
            return cur.rowcount

    def _select_by_document(
        self, conn: psycopg.Connection[Any], document_id: str
    ) -> list[WorkflowStep]:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM workflow_steps
                WHERE document_id = %s
                ORDER BY seq
                """,
                (document_id,),
            )
            rows = cur.fetchall()
        return [_to_step(row) for row in rows]


def _to_step(row: dict[str, Any]) -> WorkflowStep:
    outcome = row["resolution_outcome"]
    parent = row["parent_step_id"]
    to_actor = row["to_actor_id"]
    return WorkflowStep(
        id=str(row["id"]),
        document_id=str(row["document_id"]),
        parent_step_id=str(parent) if parent is not None else None,
        from_actor_id=str(row["from_actor_id"]),
        to_actor_id=str(to_actor) if to_actor is not None else None,
        action=WorkflowAction(row["action"]),
        step_status=StepStatus(row["step_status"]),
        resolution_outcome=ResolutionOutcome(outcome) if outcome else None,
        notes=row["notes"],
        is_expired=row["is_expired"],
        completed_at=row["completed_at"],
        created_at=row["created_at"],
    )
