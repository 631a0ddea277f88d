"""Lifecycle status derivation and the document state machine."""

from collections.abc import Sequence

from registratura.database.models import LifecycleStatus, TerminalDecision

_TRANSITIONS: dict[LifecycleStatus, frozenset[LifecycleStatus]] = {
    LifecycleStatus.DRAFT: frozenset(
        {
            LifecycleStatus.REGISTERED,
            LifecycleStatus.IN_WORK,
            LifecycleStatus.DISTRIBUTED,
            LifecycleStatus.RESOLVED,
        }
    ),
    LifecycleStatus.REGISTERED: frozenset(
        {LifecycleStatus.IN_WORK, LifecycleStatus.DISTRIBUTED, LifecycleStatus.RESOLVED}
    ),
    LifecycleStatus.IN_WORK: frozenset(
        {
            LifecycleStatus.DISTRIBUTED,
            LifecycleStatus.RESOLVED,
            LifecycleStatus.CANCELLED,
        }
    ),
    LifecycleStatus.DISTRIBUTED: frozenset(
        {
            LifecycleStatus.IN_WORK,
            LifecycleStatus.RESOLVED,
            LifecycleStatus.CANCELLED,
        }
    ),
    LifecycleStatus.RESOLVED: frozenset(
        {
            LifecycleStatus.ARCHIVED,
            LifecycleStatus.CANCELLED,
            LifecycleStatus.IN_WORK,
            LifecycleStatus.DISTRIBUTED,
        }
    ),
    LifecycleStatus.ARCHIVED: frozenset(),
    LifecycleStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({LifecycleStatus.ARCHIVED, LifecycleStatus.CANCELLED})
CANCELLABLE_STATUSES = frozenset(
    {LifecycleStatus.IN_WORK, LifecycleStatus.DISTRIBUTED, LifecycleStatus.RESOLVED}
)


def resolve_status(
    decision: TerminalDecision | None,
    distributed_actor_ids: Sequence[str],
) -> LifecycleStatus:
    """Derive the lifecycle status from a terminal decision and a distribution list.

    A decision of approved/rejected always wins; otherwise a non-empty
    distribution list means someone still holds the document. ``None`` stands
    for "no decision yet".
    """
    if decision in (TerminalDecision.APPROVED, TerminalDecision.REJECTED):
        return LifecycleStatus.RESOLVED
    if distributed_actor_ids:
        return LifecycleStatus.DISTRIBUTED
    return LifecycleStatus.IN_WORK


def can_transition(current: LifecycleStatus, target: LifecycleStatus) -> bool:
    """Staying in place is allowed for every non-terminal status."""
    if current == target:
        return current not in TERMINAL_STATUSES
    return target in _TRANSITIONS[current]


def is_reopening(current: LifecycleStatus, target: LifecycleStatus) -> bool:
    """True when a resolved document would go back into circulation."""
    return current is LifecycleStatus.RESOLVED and target in (
        LifecycleStatus.IN_WORK,
        LifecycleStatus.DISTRIBUTED,
    )
