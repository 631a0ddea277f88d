from datetime import date
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from registratura.database.connection import get_connection
from registratura.database.ids import is_valid_id
from registratura.database.models import (
    DocumentClass,
    DocumentRecord,
    LifecycleStatus,
    TerminalDecision,
)
from registratura.workflow.exceptions import DocumentNotFoundError

_COLUMNS = """
    id, organization_id, document_class, registration_number, registration_year,
    subject, description, lifecycle_status, terminal_decision, due_date,
    creator_id, last_editor_id, is_secret, has_ledger_entries, created_at, updated_at
"""

_UPDATABLE_COLUMNS = frozenset(
    {
        "subject",
        "description",
        "due_date",
        "lifecycle_status",
        "terminal_decision",
        "has_ledger_entries",
    }
)


class DocumentRepository:
    """Database operations for the documents table."""

    def insert(
        self,
        conn: psycopg.Connection[Any],
        *,
        organization_id: str,
        document_class: DocumentClass,
        subject: str,
        creator_id: str,
        lifecycle_status: LifecycleStatus,
        description: str | None = None,
        due_date: date | None = None,
        is_secret: bool = False,
        registration_number: int | None = None,
        registration_year: int | None = None,
    ) -> DocumentRecord:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                INSERT INTO documents
                    (organization_id, document_class, registration_number,
                     registration_year, subject, description, lifecycle_status,
                     due_date, creator_id, last_editor_id, is_secret)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (
                    organization_id,
                    DocumentClass(document_class).value,
                    registration_number,
                    registration_year,
                    subject,
                    description,
                    LifecycleStatus(lifecycle_status).value,
                    due_date,
                    creator_id,
                    creator_id,
                    is_secret,
                ),
            )
            row = cur.fetchone()
        if row is None:
            raise RuntimeError("Document insert returned no row")
        return _to_record(row)

    def find_by_id(self, document_id: str) -> DocumentRecord:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        if not is_valid_id(document_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    def lock_by_id(self, conn: psycopg.Connection[Any], document_id: str) -> DocumentRecord:
        """Load a document and hold its row lock until the transaction ends.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        if not is_valid_id(document_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id = %s FOR UPDATE",
                (document_id,),
            )
            row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    def update_fields(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        fields: dict[str, Any],
        editor_id: str,
    ) -> DocumentRecord:
        """Write a set of columns plus the editor stamp in one statement.

        Raises:
            ValueError: if a column outside the updatable set is given.
            DocumentNotFoundError: if no document with this ID exists.
        """
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Columns not updatable: {sorted(unknown)}")

        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in fields
        ]
        assignments.append(sql.SQL("last_editor_id = %s"))
        assignments.append(sql.SQL("updated_at = NOW()"))
        query = sql.SQL(
            "UPDATE documents SET {assignments} WHERE id = %s RETURNING {columns}"
        ).format(
            assignments=sql.SQL(", ").join(assignments),
            columns=sql.SQL(_COLUMNS),
        )
        params = [_to_db_value(value) for value in fields.values()]
        params.extend([editor_id, document_id])

        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, params)
            row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    def assign_registration_number(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        number: int,
        year: int,
        editor_id: str,
    ) -> DocumentRecord | None:
        """Set the number of an unnumbered draft. Returns None if it already had one."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                UPDATE documents
                SET registration_number = %s, registration_year = %s,
                    lifecycle_status = %s, last_editor_id = %s, updated_at = NOW()
                WHERE id = %s AND registration_number IS NULL
                RETURNING {_COLUMNS}
                """,
                (number, year, LifecycleStatus.REGISTERED.value, editor_id, document_id),
            )
            row = cur.fetchone()
        return None if row is None else _to_record(row)


def _to_db_value(value: Any) -> Any:
    if isinstance(value, (LifecycleStatus, TerminalDecision, DocumentClass)):
        return value.value
    return value


def _to_record(row: dict[str, Any]) -> DocumentRecord:
    decision = row["terminal_decision"]
    return DocumentRecord(
        id=str(row["id"]),
        organization_id=row["organization_id"],
        document_class=DocumentClass(row["document_class"]),
        registration_number=row["registration_number"],
        registration_year=row["registration_year"],
        subject=row["subject"],
        description=row["description"],
        lifecycle_status=LifecycleStatus(row["lifecycle_status"]),
        terminal_decision=TerminalDecision(decision) if decision else None,
        due_date=row["due_date"],
        creator_id=str(row["creator_id"]),
        last_editor_id=str(row["last_editor_id"]),
        is_secret=row["is_secret"],
        has_ledger_entries=row["has_ledger_entries"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
