from collections.abc import Iterable
from typing import Any

import psycopg

from registratura.database.models import (
    NewWorkflowStep,
    ResolutionOutcome,
    StepStatus,
    TerminalDecision,
    WorkflowAction,
    WorkflowStep,
    WorkflowTreeNode,
)
from registratura.database.repositories.workflow_step_repository import WorkflowStepRepository
from registratura.logging.logger import Log
from registratura.workflow.exceptions import InvalidInputError, WorkflowStepNotFoundError

ROUTING_ACTIONS = frozenset({WorkflowAction.FORWARDED, WorkflowAction.RETURNED})


def outcome_for(decision: TerminalDecision | None) -> ResolutionOutcome | None:
    """Map a terminal decision onto a step outcome; redirect and none have none."""
    if decision is TerminalDecision.APPROVED:
        return ResolutionOutcome.APPROVED
    if decision is TerminalDecision.REJECTED:
        return ResolutionOutcome.REJECTED
    return None


class WorkflowLedger:
    """Append-only history of routing actions on a document.

    Write operations take the connection of the caller's transaction so the
    ledger rows commit together with the document status they explain.
    """

    def __init__(self, repo: WorkflowStepRepository) -> None:
        self._repo = repo

    def append_creator_step(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        creator_id: str,
        decision: TerminalDecision | None,
        notes: str | None = None,
    ) -> WorkflowStep:
        """First entry of every ledger: the creator filing the document."""
        return self._repo.insert(
            conn,
            NewWorkflowStep(
                document_id=document_id,
                from_actor_id=creator_id,
                to_actor_id=creator_id,
                action=WorkflowAction.SENT,
                step_status=StepStatus.COMPLETED,
                resolution_outcome=outcome_for(decision),
                notes=notes,
            ),
        )

    def append_distribution_steps(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        creator_id: str,
        actor_ids: Iterable[str],
        notes: str | None = None,
    ) -> list[WorkflowStep]:
        """One pending ``forwarded`` step per actor, each a root of its own branch."""
        steps: list[WorkflowStep] = []
        for actor_id in dict.fromkeys(actor_ids):
            steps.append(
                self._repo.insert(
                    conn,
                    NewWorkflowStep(
                        document_id=document_id,
                        from_actor_id=creator_id,
                        to_actor_id=actor_id,
                        action=WorkflowAction.FORWARDED,
                        step_status=StepStatus.PENDING,
                        notes=notes,
                    ),
                )
            )
        return steps

    def append_resolution_step(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        actor_id: str,
        decision: TerminalDecision,
        notes: str | None = None,
    ) -> WorkflowStep:
        """Record who approved or rejected the document.

        Raises:
            InvalidInputError: if the decision is not approved/rejected or the
                ledger has no entry yet.
        """
        outcome = outcome_for(decision)
        if outcome is None:
            raise InvalidInputError(f"Decision {decision!r} does not resolve a document")
        if not self._repo.has_entries(conn, document_id):
            raise InvalidInputError(
                f"Document {document_id} has no ledger entries to resolve against"
            )
        return self._repo.insert(
            conn,
            NewWorkflowStep(
                document_id=document_id,
                from_actor_id=actor_id,
                to_actor_id=actor_id,
                action=(
                    WorkflowAction.APPROVED
                    if outcome is ResolutionOutcome.APPROVED
                    else WorkflowAction.REJECTED
                ),
                step_status=StepStatus.COMPLETED,
                resolution_outcome=outcome,
                notes=notes,
            ),
        )

    def append_route_step(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        from_actor_id: str,
        to_actor_id: str,
        action: WorkflowAction,
        parent_step_id: str | None = None,
        notes: str | None = None,
    ) -> WorkflowStep:
        """Forward or return a document, optionally branching under an earlier step.

        Raises:
            InvalidInputError: if the action is not a routing action.
            WorkflowStepNotFoundError: if the parent step is not in this document.
        """
        if action not in ROUTING_ACTIONS:
            raise InvalidInputError(f"Action {action!r} is not a routing action")
        if parent_step_id is not None:
            parent = self._repo.find_in_document(conn, parent_step_id, document_id)
            if parent is None:
                raise WorkflowStepNotFoundError(
                    f"Step {parent_step_id} not found in document {document_id}"
                )
        return self._repo.insert(
            conn,
            NewWorkflowStep(
                document_id=document_id,
                parent_step_id=parent_step_id,
                from_actor_id=from_actor_id,
                to_actor_id=to_actor_id,
                action=action,
                step_status=StepStatus.PENDING,
                notes=notes,
            ),
        )

    def append_cancellation_step(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        actor_id: str,
        notes: str | None = None,
    ) -> WorkflowStep:
        return self._repo.insert(
            conn,
            NewWorkflowStep(
                document_id=document_id,
                from_actor_id=actor_id,
                to_actor_id=actor_id,
                action=WorkflowAction.CANCELLED,
                step_status=StepStatus.COMPLETED,
                notes=notes,
            ),
        )

    def has_entries(self, conn: psycopg.Connection[Any], document_id: str) -> bool:
        return self._repo.has_entries(conn, document_id)

    def complete_pending_for_actor(
        self,
        conn: psycopg.Connection[Any],
        document_id: str,
        actor_id: str,
        outcome: ResolutionOutcome | None,
    ) -> int:
        completed = self._repo.complete_pending(conn, document_id, outcome, actor_id=actor_id)
        if completed:
            Log.debug(f"Completed {completed} pending steps on document {document_id}")
        return completed

    def close_all_pending(self, conn: psycopg.Connection[Any], document_id: str) -> int:
        return self._repo.complete_pending(conn, document_id, None)

    def pending_recipients(self, conn: psycopg.Connection[Any], document_id: str) -> list[str]:
        return self._repo.pending_recipients(conn, document_id)

    def history(
        self,
        document_id: str,
        conn: psycopg.Connection[Any] | None = None,
    ) -> list[WorkflowStep]:
        """Ledger entries of a document ordered by creation."""
        return self._repo.list_by_document(document_id, conn)

    def tree(self, document_id: str) -> list[WorkflowTreeNode]:
        return build_tree(self.history(document_id))

    def sweep_expired(self, conn: psycopg.Connection[Any]) -> int:
        return self._repo.mark_expired(conn)


def build_tree(steps: list[WorkflowStep]) -> list[WorkflowTreeNode]:
    """Arrange steps into a forest using their parent pointers.

    A step whose parent is missing from ``steps`` is treated as a root.
    """
    nodes = {step.id: WorkflowTreeNode(step=step) for step in steps}
    roots: list[WorkflowTreeNode] = []
    for step in steps:
        node = nodes[step.id]
        parent = nodes.get(step.parent_step_id) if step.parent_step_id else None
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots
