import uuid

import pytest

from registratura.database.models import (
    ResolutionOutcome,
    StepStatus,
    TerminalDecision,
    WorkflowAction,
    WorkflowStep,
)
from registratura.workflow.exceptions import InvalidInputError, WorkflowStepNotFoundError
from registratura.workflow.ledger import WorkflowLedger, build_tree, outcome_for
from tests.unit.fakes import ACTOR_A, ACTOR_B, CREATOR, FakeStepRepository

DOC = "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def ledger(step_repo: FakeStepRepository) -> WorkflowLedger:
    return WorkflowLedger(step_repo)  # type: ignore[arg-type]


def _step(step_id: str, parent: str | None = None) -> WorkflowStep:
    return WorkflowStep(
        id=step_id,
        document_id=DOC,
        parent_step_id=parent,
        from_actor_id=CREATOR,
        to_actor_id=ACTOR_A,
        action=WorkflowAction.FORWARDED,
        step_status=StepStatus.PENDING,
    )


class TestOutcomeFor:
    def test_maps_resolving_decisions(self) -> None:
        assert outcome_for(TerminalDecision.APPROVED) is ResolutionOutcome.APPROVED
        assert outcome_for(TerminalDecision.REJECTED) is ResolutionOutcome.REJECTED

    def test_redirect_and_none_have_no_outcome(self) -> None:
        assert outcome_for(TerminalDecision.REDIRECTED) is None
        assert outcome_for(None) is None


class TestAppend:
    def test_creator_step_is_completed_self_step(self, ledger: WorkflowLedger) -> None:
        step = ledger.append_creator_step(None, DOC, CREATOR, TerminalDecision.REJECTED, "filed")

        assert step.action is WorkflowAction.SENT
        assert step.step_status is StepStatus.COMPLETED
        assert step.from_actor_id == step.to_actor_id == CREATOR
        assert step.resolution_outcome is ResolutionOutcome.REJECTED
        assert step.completed_at is not None
        assert step.notes == "filed"

    def test_distribution_steps_are_pending_roots_without_duplicates(
        self, ledger: WorkflowLedger
    ) -> None:
        steps = ledger.append_distribution_steps(None, DOC, CREATOR, [ACTOR_A, ACTOR_B, ACTOR_A])

        assert [s.to_actor_id for s in steps] == [ACTOR_A, ACTOR_B]
        assert all(s.step_status is StepStatus.PENDING for s in steps)
        assert all(s.action is WorkflowAction.FORWARDED for s in steps)
        assert all(s.parent_step_id is None for s in steps)
        assert all(s.completed_at is None for s in steps)

    def test_resolution_step_requires_existing_ledger(self, ledger: WorkflowLedger) -> None:
        with pytest.raises(InvalidInputError, match="no ledger entries"):
            ledger.append_resolution_step(None, DOC, ACTOR_A, TerminalDecision.APPROVED)

    def test_resolution_step_rejects_redirect(self, ledger: WorkflowLedger) -> None:
        ledger.append_creator_step(None, DOC, CREATOR, None)

        with pytest.raises(InvalidInputError):
            ledger.append_resolution_step(None, DOC, ACTOR_A, TerminalDecision.REDIRECTED)

    def test_resolution_step_records_outcome(self, ledger: WorkflowLedger) -> None:
        ledger.append_creator_step(None, DOC, CREATOR, None)

        step = ledger.append_resolution_step(None, DOC, ACTOR_A, TerminalDecision.REJECTED)

        assert step.action is WorkflowAction.REJECTED
        assert step.resolution_outcome is ResolutionOutcome.REJECTED
        assert step.step_status is StepStatus.COMPLETED

    def test_route_step_with_unknown_parent(self, ledger: WorkflowLedger) -> None:
        with pytest.raises(WorkflowStepNotFoundError):
            ledger.append_route_step(
                None, DOC, CREATOR, ACTOR_A, WorkflowAction.FORWARDED, str(uuid.uuid4())
            )

    def test_route_step_under_parent(self, ledger: WorkflowLedger) -> None:
        parent = ledger.append_route_step(None, DOC, CREATOR, ACTOR_A, WorkflowAction.FORWARDED)

        child = ledger.append_route_step(
            None, DOC, ACTOR_A, CREATOR, WorkflowAction.RETURNED, parent.id, "missing stamp"
        )

        assert child.parent_step_id == parent.id
        assert child.step_status is StepStatus.PENDING

    def test_route_step_rejects_non_routing_action(self, ledger: WorkflowLedger) -> None:
        with pytest.raises(InvalidInputError):
            ledger.append_route_step(None, DOC, CREATOR, ACTOR_A, WorkflowAction.SENT)

    def test_cancellation_step(self, ledger: WorkflowLedger) -> None:
        step = ledger.append_cancellation_step(None, DOC, ACTOR_A, "duplicate")

        assert step.action is WorkflowAction.CANCELLED
        assert step.step_status is StepStatus.COMPLETED


class TestPending:
    def test_pending_recipients_and_completion(self, ledger: WorkflowLedger) -> None:
        ledger.append_creator_step(None, DOC, CREATOR, None)
        ledger.append_distribution_steps(None, DOC, CREATOR, [ACTOR_A, ACTOR_B])

        assert ledger.pending_recipients(None, DOC) == [ACTOR_A, ACTOR_B]
        assert ledger.complete_pending_for_actor(None, DOC, ACTOR_A, ResolutionOutcome.APPROVED) == 1
        assert ledger.pending_recipients(None, DOC) == [ACTOR_B]
        assert ledger.close_all_pending(None, DOC) == 1
        assert ledger.pending_recipients(None, DOC) == []

    def test_history_keeps_insertion_order(self, ledger: WorkflowLedger) -> None:
        creator = ledger.append_creator_step(None, DOC, CREATOR, None)
        routed = ledger.append_distribution_steps(None, DOC, CREATOR, [ACTOR_A])

        assert [s.id for s in ledger.history(DOC)] == [creator.id, routed[0].id]
        assert ledger.has_entries(None, DOC)
        assert not ledger.has_entries(None, str(uuid.uuid4()))


class TestBuildTree:
    def test_nests_children_under_parents(self) -> None:
        steps = [_step("a"), _step("b", "a"), _step("c", "a"), _step("d", "b"), _step("e")]

        roots = build_tree(steps)

        assert [node.step.id for node in roots] == ["a", "e"]
        assert [child.step.id for child in roots[0].children] == ["b", "c"]
        assert [child.step.id for child in roots[0].children[0].children] == ["d"]
        assert roots[1].children == []

    def test_orphan_is_treated_as_root(self) -> None:
        roots = build_tree([_step("x", "missing")])

        assert [node.step.id for node in roots] == ["x"]

    def test_empty(self) -> None:
        assert build_tree([]) == []
