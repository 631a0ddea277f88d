from collections.abc import Sequence
from typing import Any

import psycopg

from registratura.config.settings import Settings
from registratura.database.connection import get_connection
from registratura.database.models import (
    DocumentRecord,
    LifecycleStatus,
    TerminalDecision,
    WorkflowAction,
    WorkflowStep,
)
from registratura.database.repositories.document_repository import DocumentRepository
from registratura.directory.base import BaseUserDirectory
from registratura.logging.logger import Log
from registratura.notifications.dispatcher import NotificationDispatcher
from registratura.notifications.message import build_redirect_notification
from registratura.workflow.exceptions import (
    ActorNotFoundError,
    ConflictRaceError,
    ForbiddenError,
    InvalidTransitionError,
)
from registratura.workflow.ledger import WorkflowLedger, outcome_for
from registratura.workflow.patch import DocumentPatch, parse_patch
from registratura.workflow.status_resolver import (
    TERMINAL_STATUSES,
    can_transition,
    is_reopening,
    resolve_status,
)

RESOLVING_DECISIONS = frozenset({TerminalDecision.APPROVED, TerminalDecision.REJECTED})


class UpdateOrchestrator:
    """The "update document" use case: status, ledger and notifications.

    Pipeline: validate -> lock -> authorize -> sanitize -> resolve -> write
    record -> write ledger -> commit -> notify. Everything up to the commit
    runs in one transaction holding the document's row lock, so concurrent
    updates of the same document are serialized and the first-save check
    cannot be passed twice. Notifications run after the commit and never
    undo it.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        ledger: WorkflowLedger,
        directory: BaseUserDirectory,
        dispatcher: NotificationDispatcher,
        settings: Settings,
    ) -> None:
        self._documents = documents
        self._ledger = ledger
        self._directory = directory
        self._dispatcher = dispatcher
        self._settings = settings

    def update(
        self,
        document_id: str,
        actor_id: str,
        payload: dict[str, Any] | DocumentPatch,
    ) -> DocumentRecord:
        """Apply a routing/field patch to a document on behalf of ``actor_id``.

        Raises:
            InvalidInputError: if the patch is malformed.
            InvalidTransitionError: if the document is closed or may not reopen.
            DocumentNotFoundError: if no document with this ID exists.
            ForbiddenError: if a redirect is attempted without the right to do so.
        """
        patch = parse_patch(payload)

        with get_connection() as conn:
            with conn.transaction():
                document = self._documents.lock_by_id(conn, document_id)
                self._authorize_redirect(conn, document, actor_id, patch)
                self._ensure_open(document)
                sanitized = self._sanitize(conn, patch)

                decision = (
                    patch.terminal_decision
                    if patch.has("terminal_decision")
                    else document.terminal_decision
                )
                holders = (
                    self._ledger.pending_recipients(conn, document.id)
                    if document.has_ledger_entries
                    else []
                )
                distribution = self._effective_distribution(
                    patch, sanitized, holders, actor_id
                )
                new_status = resolve_status(decision, distribution)
                self._check_transition(document, new_status)

                fields = patch.field_changes()
                fields["lifecycle_status"] = new_status
                if patch.has("terminal_decision"):
                    fields["terminal_decision"] = patch.terminal_decision
                fields["has_ledger_entries"] = True
                updated = self._documents.update_fields(conn, document.id, fields, actor_id)

                routed = self._write_ledger(
                    conn, document, actor_id, patch, decision, sanitized, holders
                )

        Log.info(
            f"Document {updated.id} updated by {actor_id}: "
            f"{document.lifecycle_status.value} -> {updated.lifecycle_status.value}"
        )

        if patch.terminal_decision is TerminalDecision.REDIRECTED and routed:
            self._notify(updated, routed, actor_id)
        return updated

    def route(
        self,
        document_id: str,
        actor_id: str,
        to_actor_id: str,
        action: WorkflowAction = WorkflowAction.FORWARDED,
        parent_step_id: str | None = None,
        notes: str | None = None,
    ) -> WorkflowStep:
        """Forward or return a document to a single actor as a new ledger branch.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            ActorNotFoundError: if the target actor is unknown or inactive.
            ForbiddenError: if the actor neither owns, holds nor may redirect it.
            WorkflowStepNotFoundError: if the parent step is not in this document.
            InvalidInputError / InvalidTransitionError: on bad action or closed document.
        """
        with get_connection() as conn:
            with conn.transaction():
                document = self._documents.lock_by_id(conn, document_id)
                self._ensure_open(document)
                holders = (
                    self._ledger.pending_recipients(conn, document.id)
                    if document.has_ledger_entries
                    else []
                )
                if not (
                    actor_id == document.creator_id
                    or actor_id in holders
                    or self._directory.has_permission(
                        actor_id, self._settings.redirect_any_permission, conn
                    )
                ):
                    raise ForbiddenError(
                        f"Actor {actor_id} may not route document {document_id}"
                    )
                targets = self._directory.list_active([to_actor_id], conn)
                if not targets:
                    raise ActorNotFoundError("Target actor not found")
                to_actor_id = targets[0]

                self._check_transition(document, LifecycleStatus.DISTRIBUTED)
                if not document.has_ledger_entries:
                    self._append_creator_step(conn, document, document.terminal_decision, None)

                step = self._ledger.append_route_step(
                    conn,
                    document.id,
                    actor_id,
                    to_actor_id,
                    WorkflowAction(action),
                    parent_step_id,
                    notes,
                )
                if actor_id in holders:
                    self._ledger.complete_pending_for_actor(conn, document.id, actor_id, None)
                updated = self._documents.update_fields(
                    conn,
                    document.id,
                    {
                        "lifecycle_status": LifecycleStatus.DISTRIBUTED,
                        "has_ledger_entries": True,
                    },
                    actor_id,
                )

        Log.info(f"Document {document_id} {step.action.value} by {actor_id}")
        self._notify(updated, [to_actor_id], actor_id)
        return step

    def _authorize_redirect(
        self,
        conn: psycopg.Connection[Any],
        document: DocumentRecord,
        actor_id: str,
        patch: DocumentPatch,
    ) -> None:
        if patch.terminal_decision is not TerminalDecision.REDIRECTED:
            return
        if actor_id == document.creator_id:
            return
        if self._directory.has_permission(
            actor_id, self._settings.redirect_any_permission, conn
        ):
            return
        raise ForbiddenError(
            f"Actor {actor_id} may not redirect document {document.id}"
        )

    def _ensure_open(self, document: DocumentRecord) -> None:
        if document.lifecycle_status in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                f"Document {document.id} is {document.lifecycle_status.value}"
            )

    def _check_transition(self, document: DocumentRecord, target: LifecycleStatus) -> None:
        current = document.lifecycle_status
        if is_reopening(current, target):
            if not self._settings.allow_reopen_resolved:
                raise InvalidTransitionError(
                    f"Document {document.id} is resolved and cannot be reopened"
                )
            return
        if not can_transition(current, target):
            raise InvalidTransitionError(
                f"Document {document.id} cannot move from {current.value} to {target.value}"
            )

    def _sanitize(self, conn: psycopg.Connection[Any], patch: DocumentPatch) -> list[str]:
        """Keep only existing, active actors. Drops are logged as a count only."""
        if not patch.has("distributed_actor_ids") or not patch.distributed_actor_ids:
            return []
        requested = list(dict.fromkeys(patch.distributed_actor_ids))
        active = self._directory.list_active(requested, conn)
        dropped = len(requested) - len(active)
        if dropped > 0:
            Log.info(f"Dropped {dropped} invalid or inactive distribution entries")
        return active

    def _effective_distribution(
        self,
        patch: DocumentPatch,
        sanitized: Sequence[str],
        holders: Sequence[str],
        actor_id: str,
    ) -> list[str]:
        """Actors that will be holding the document once this update is applied."""
        if patch.has("distributed_actor_ids"):
            return list(sanitized)
        if patch.terminal_decision in RESOLVING_DECISIONS:
            return [holder for holder in holders if holder != actor_id]
        return list(holders)

    def _write_ledger(
        self,
        conn: psycopg.Connection[Any],
        document: DocumentRecord,
        actor_id: str,
        patch: DocumentPatch,
        decision: TerminalDecision | None,
        sanitized: Sequence[str],
        holders: Sequence[str],
    ) -> list[str]:
        """Append this update's ledger rows. Returns the actors newly routed to."""
        if not document.has_ledger_entries:
            self._append_creator_step(conn, document, decision, patch.notes)
            if sanitized:
                self._ledger.append_distribution_steps(
                    conn, document.id, document.creator_id, sanitized, patch.notes
                )
            return list(sanitized)

        if patch.terminal_decision in RESOLVING_DECISIONS:
            self._ledger.complete_pending_for_actor(
                conn, document.id, actor_id, outcome_for(patch.terminal_decision)
            )
            self._ledger.append_resolution_step(
                conn, document.id, actor_id, patch.terminal_decision, patch.notes
            )
            return []

        if decision not in RESOLVING_DECISIONS and patch.has("distributed_actor_ids"):
            newly_routed = [actor for actor in sanitized if actor not in holders]
            if newly_routed:
                self._ledger.append_distribution_steps(
                    conn, document.id, actor_id, newly_routed, patch.notes
                )
            return newly_routed
        return []

    def _append_creator_step(
        self,
        conn: psycopg.Connection[Any],
        document: DocumentRecord,
        decision: TerminalDecision | None,
        notes: str | None,
    ) -> None:
        if self._ledger.has_entries(conn, document.id):
            raise ConflictRaceError(
                f"Document {document.id} already has ledger entries on first save"
            )
        self._ledger.append_creator_step(conn, document.id, document.creator_id, decision, notes)

    def _notify(
        self, document: DocumentRecord, recipients: Sequence[str], actor_id: str
    ) -> None:
        message = build_redirect_notification(
            document,
            subject_max_chars=self._settings.notification_subject_max_chars,
            link_base=self._settings.notification_link_base,
        )
        delivered = self._dispatcher.fan_out(recipients, message, actor_id)
        Log.info(f"Notified {delivered} of {len(recipients)} recipients for {document.id}")
