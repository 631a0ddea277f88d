"""Validation of the inbound update request."""

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from registratura.database.models import TerminalDecision
from registratura.workflow.exceptions import InvalidInputError


class DocumentPatch(BaseModel):
    """Partial update of a document. Absent keys leave the stored value alone."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    subject: str | None = Field(default=None, max_length=500)
    description: str | None = None
    terminal_decision: TerminalDecision | None = None
    distributed_actor_ids: list[str] | None = None
    due_date: date | None = None
    notes: str | None = None

    @field_validator("subject")
    @classmethod
    def _subject_not_blank(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            raise ValueError("Subject is required")
        return value

    def has(self, field_name: str) -> bool:
        return field_name in self.model_fields_set

    def field_changes(self) -> dict[str, Any]:
        """Descriptive columns present in the patch."""
        return {
            name: getattr(self, name)
            for name in ("subject", "description", "due_date")
            if self.has(name)
        }


def parse_patch(payload: dict[str, Any] | DocumentPatch) -> DocumentPatch:
    """Build a DocumentPatch from a request body.

    Raises:
        InvalidInputError: with the first validation message.
    """
    if isinstance(payload, DocumentPatch):
        return payload
    if not isinstance(payload, dict):
        raise InvalidInputError("Update payload must be an object")
    try:
        return DocumentPatch.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidInputError(f"{location}: {first['msg']}") from exc
