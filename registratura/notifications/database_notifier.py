import psycopg

from registratura.database.repositories.notification_repository import NotificationRepository
from registratura.notifications.base import BaseNotifier
from registratura.notifications.exceptions import NotifierError


class DatabaseNotifier(BaseNotifier):
    """Stores in-app notifications shown in the recipient's notification list."""

    def __init__(self, repo: NotificationRepository) -> None:
        self._repo = repo

    def notify(
        self,
        actor_id: str,
        title: str,
        message: str,
        link: str,
        originating_actor_id: str,
    ) -> None:
        try:
            self._repo.insert(
                user_id=actor_id,
                title=title,
                message=message,
                link=link,
                created_by=originating_actor_id,
            )
        except psycopg.Error as exc:
            raise NotifierError(f"Failed to store notification: {exc}") from exc
