from datetime import date, datetime, timezone
from typing import Any

import psycopg

from registratura.database.connection import get_connection
from registratura.database.models import DocumentClass, DocumentRecord, LifecycleStatus
from registratura.database.repositories.document_repository import DocumentRepository
from registratura.logging.logger import Log
from registratura.numbering.allocator import NumberAllocator
from registratura.workflow.exceptions import InvalidInputError, InvalidTransitionError

EDITABLE_FIELDS = frozenset({"subject", "description", "due_date"})
SUBJECT_MAX_LENGTH = 500


class DocumentRecordStore:
    """Creation, lookup and descriptive edits of registry documents."""

    def __init__(self, repo: DocumentRepository, allocator: NumberAllocator) -> None:
        self._repo = repo
        self._allocator = allocator

    def create(
        self,
        organization_id: str,
        document_class: DocumentClass | str,
        subject: str,
        creator_id: str,
        *,
        description: str | None = None,
        due_date: date | None = None,
        is_secret: bool = False,
        register: bool = True,
        year: int | None = None,
    ) -> DocumentRecord:
        """Create a document, numbering it in the same transaction when requested.

        Raises:
            InvalidInputError: on an unknown document class or an empty subject.
        """
        doc_class = _parse_document_class(document_class)
        _validate_subject(subject)
        registration_year = year or datetime.now(timezone.utc).year

        with get_connection() as conn:
            with conn.transaction():
                number: int | None = None
                if register:
                    number, _formatted = self._allocator.allocate(
                        organization_id, doc_class, registration_year, conn
                    )
                record = self._repo.insert(
                    conn,
                    organization_id=organization_id,
                    document_class=doc_class,
                    subject=subject,
                    creator_id=creator_id,
                    lifecycle_status=(
                        LifecycleStatus.REGISTERED if register else LifecycleStatus.DRAFT
                    ),
                    description=description,
                    due_date=due_date,
                    is_secret=is_secret,
                    registration_number=number,
                    registration_year=registration_year if register else None,
                )

        Log.info(
            f"Created document {record.id} ({record.lifecycle_status.value}) "
            f"number={record.formatted_number}"
        )
        return record

    def get(self, document_id: str) -> DocumentRecord:
        """Raises DocumentNotFoundError if the document does not exist."""
        return self._repo.find_by_id(document_id)

    def apply_field_update(
        self,
        document_id: str,
        patch: dict[str, Any],
        editor_id: str,
        conn: psycopg.Connection[Any] | None = None,
    ) -> DocumentRecord:
        """Apply a partial patch of descriptive fields. Never touches the status.

        Raises:
            InvalidInputError: if the patch names other fields or blanks the subject.
            DocumentNotFoundError: if no document with this ID exists.
        """
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise InvalidInputError(f"Fields not editable: {sorted(unknown)}")
        if "subject" in patch:
            _validate_subject(patch["subject"])

        if conn is not None:
            return self._write_fields(conn, document_id, patch, editor_id)
        with get_connection() as own_conn:
            with own_conn.transaction():
                return self._write_fields(own_conn, document_id, patch, editor_id)

    def register(self, document_id: str, actor_id: str) -> DocumentRecord:
        """Assign a registration number to a draft (draft -> registered).

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            InvalidTransitionError: if the document already has a number or left draft.
        """
        with get_connection() as conn:
            with conn.transaction():
                document = self._repo.lock_by_id(conn, document_id)
                if document.registration_number is not None:
                    raise InvalidTransitionError(
                        f"Document {document_id} is already registered as "
                        f"{document.formatted_number}"
                    )
                if document.lifecycle_status is not LifecycleStatus.DRAFT:
                    raise InvalidTransitionError(
                        f"Document {document_id} cannot be registered from "
                        f"{document.lifecycle_status.value}"
                    )
                year = datetime.now(timezone.utc).year
                number, _formatted = self._allocator.allocate(
                    document.organization_id, document.document_class, year, conn
                )
                record = self._repo.assign_registration_number(
                    conn, document_id, number, year, actor_id
                )
                if record is None:
                    raise InvalidTransitionError(
                        f"Document {document_id} was registered concurrently"
                    )

        Log.info(f"Registered document {record.id} as {record.formatted_number}")
        return record

    def _write_fields(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        patch: dict[str, Any],
        editor_id: str,
    ) -> DocumentRecord:
        if not patch:
            return self._repo.lock_by_id(conn, document_id)
        return self._repo.update_fields(conn, document_id, dict(patch), editor_id)


def _parse_document_class(value: DocumentClass | str) -> DocumentClass:
    try:
        return DocumentClass(value)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown document class: {value!r}") from exc


def _validate_subject(subject: Any) -> None:
    if not isinstance(subject, str) or not subject.strip():
        raise InvalidInputError("Subject is required")
    if len(subject) > SUBJECT_MAX_LENGTH:
        raise InvalidInputError(f"Subject longer than {SUBJECT_MAX_LENGTH} characters")
