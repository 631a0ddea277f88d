from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class DocumentClass(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    INTERNAL = "internal"


class LifecycleStatus(str, Enum):
    DRAFT = "draft"
    REGISTERED = "registered"
    IN_WORK = "in_work"
    DISTRIBUTED = "distributed"
    RESOLVED = "resolved"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class TerminalDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    REDIRECTED = "redirected"


class WorkflowAction(str, Enum):
    SENT = "sent"
    FORWARDED = "forwarded"
    RETURNED = "returned"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class StepStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ResolutionOutcome(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class CounterKey:
    """Numbering scope: a sequence is unique within one key."""

    organization_id: str
    year: int
    document_class: DocumentClass


def format_registration_number(number: int | None, year: int | None) -> str | None:
    """Render the external number, e.g. ``42/2025``."""
    if number is None or year is None:
        return None
    return f"{number}/{year}"


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: str
    organization_id: str
    document_class: DocumentClass
    subject: str
    lifecycle_status: LifecycleStatus
    creator_id: str
    last_editor_id: str
    registration_number: int | None = None
    registration_year: int | None = None
    description: str | None = None
    terminal_decision: TerminalDecision | None = None
    due_date: date | None = None
    is_secret: bool = False
    has_ledger_entries: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def formatted_number(self) -> str | None:
        return format_registration_number(self.registration_number, self.registration_year)


@dataclass
class WorkflowStep:
    """Represents a row from the workflow_steps table."""

    id: str
    document_id: str
    from_actor_id: str
    action: WorkflowAction
    step_status: StepStatus
    parent_step_id: str | None = None
    to_actor_id: str | None = None
    resolution_outcome: ResolutionOutcome | None = None
    notes: str | None = None
    is_expired: bool = False
    completed_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class NewWorkflowStep:
    """Values for a ledger row that has not been inserted yet."""

    document_id: str
    from_actor_id: str
    action: WorkflowAction
    step_status: StepStatus
    parent_step_id: str | None = None
    to_actor_id: str | None = None
    resolution_outcome: ResolutionOutcome | None = None
    notes: str | None = None


@dataclass
class WorkflowTreeNode:
    step: WorkflowStep
    children: list["WorkflowTreeNode"] = field(default_factory=list)
