"""Notifier that only writes to the application log.

Useful for local development and as a template for new adapters.
"""

from registratura.logging.logger import Log
from registratura.notifications.base import BaseNotifier


class LogNotifier(BaseNotifier):
    def notify(
        self,
        actor_id: str,
        title: str,
        message: str,
        link: str,
        originating_actor_id: str,
    ) -> None:
        _ = message, originating_actor_id
        Log.info(f"Notification for {actor_id}: {title} ({link})")
