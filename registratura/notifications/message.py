import html
from dataclasses import dataclass

from registratura.database.models import DocumentRecord


@dataclass(frozen=True)
class NotificationMessage:
    title: str
    message: str
    link: str


def truncate_subject(subject: str, max_chars: int) -> str:
    if len(subject) <= max_chars:
        return subject
    return subject[:max_chars].rstrip() + "..."


def build_redirect_notification(
    document: DocumentRecord,
    *,
    subject_max_chars: int,
    link_base: str,
) -> NotificationMessage:
    """Build the message for actors a document was routed to.

    The subject is capped before escaping so entities are never cut in half.
    """
    number = document.formatted_number or "draft"
    subject = html.escape(truncate_subject(document.subject, subject_max_chars))
    return NotificationMessage(
        title=f"Document {number} assigned to you",
        message=f"Document {html.escape(number)} was redirected to you: {subject}",
        link=f"{link_base.rstrip('/')}/{document.id}",
    )
