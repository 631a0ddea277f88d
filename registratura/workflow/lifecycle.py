from typing import Any

import psycopg

from registratura.config.settings import Settings
from registratura.database.connection import get_connection
from registratura.database.models import DocumentRecord, LifecycleStatus
from registratura.database.repositories.document_repository import DocumentRepository
from registratura.directory.base import BaseUserDirectory
from registratura.logging.logger import Log
from registratura.workflow.exceptions import ForbiddenError, InvalidTransitionError
from registratura.workflow.ledger import WorkflowLedger
from registratura.workflow.status_resolver import CANCELLABLE_STATUSES, can_transition


class LifecycleService:
    """Explicit lifecycle actions outside the update path: cancel and archive."""

    def __init__(
        self,
        documents: DocumentRepository,
        ledger: WorkflowLedger,
        directory: BaseUserDirectory,
        settings: Settings,
    ) -> None:
        self._documents = documents
        self._ledger = ledger
        self._directory = directory
        self._settings = settings

    def cancel(
        self, document_id: str, actor_id: str, notes: str | None = None
    ) -> DocumentRecord:
        """Cancel a document that is in circulation or resolved.

        The creator, an actor holding a pending step, or a manager may cancel.
        All pending steps are closed and a ``cancelled`` step is appended.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            InvalidTransitionError: if the document is not in a cancellable status.
            ForbiddenError: if the actor may not cancel it.
        """
        with get_connection() as conn:
            with conn.transaction():
                document = self._documents.lock_by_id(conn, document_id)
                if document.lifecycle_status not in CANCELLABLE_STATUSES:
                    raise InvalidTransitionError(
                        f"Document {document_id} cannot be cancelled from "
                        f"{document.lifecycle_status.value}"
                    )
                holders = self._ledger.pending_recipients(conn, document.id)
                if not (actor_id in holders or self._may_manage(conn, document, actor_id)):
                    raise ForbiddenError(
                        f"Actor {actor_id} may not cancel document {document_id}"
                    )

                closed = self._ledger.close_all_pending(conn, document.id)
                self._ledger.append_cancellation_step(conn, document.id, actor_id, notes)
                updated = self._documents.update_fields(
                    conn,
                    document.id,
                    {
                        "lifecycle_status": LifecycleStatus.CANCELLED,
                        "has_ledger_entries": True,
                    },
                    actor_id,
                )

        Log.info(f"Document {document_id} cancelled by {actor_id}, {closed} pending steps closed")
        return updated

    def archive(self, document_id: str, actor_id: str) -> DocumentRecord:
        """Move a resolved document to the archive.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            InvalidTransitionError: if the document is not resolved.
            ForbiddenError: if the actor is neither creator nor manager.
        """
        with get_connection() as conn:
            with conn.transaction():
                document = self._documents.lock_by_id(conn, document_id)
                if not can_transition(document.lifecycle_status, LifecycleStatus.ARCHIVED):
                    raise InvalidTransitionError(
                        f"Document {document_id} cannot be archived from "
                        f"{document.lifecycle_status.value}"
                    )
                if not self._may_manage(conn, document, actor_id):
                    raise ForbiddenError(
                        f"Actor {actor_id} may not archive document {document_id}"
                    )
                updated = self._documents.update_fields(
                    conn,
                    document.id,
                    {"lifecycle_status": LifecycleStatus.ARCHIVED},
                    actor_id,
                )

        Log.info(f"Document {document_id} archived by {actor_id}")
        return updated

    def _may_manage(
        self, conn: psycopg.Connection[Any], document: DocumentRecord, actor_id: str
    ) -> bool:
        if actor_id == document.creator_id:
            return True
        return self._directory.has_permission(
            actor_id, self._settings.manage_any_permission, conn
        )
