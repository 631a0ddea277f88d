from collections.abc import Sequence

from registratura.logging.logger import Log
from registratura.notifications.base import BaseNotifier
from registratura.notifications.exceptions import NotifierError
from registratura.notifications.message import NotificationMessage


class NotificationDispatcher:
    """Best-effort fan-out: capped, and one failed delivery never stops the rest."""

    def __init__(self, notifier: BaseNotifier, batch_cap: int) -> None:
        self._notifier = notifier
        self._batch_cap = batch_cap

    def fan_out(
        self,
        recipients: Sequence[str],
        message: NotificationMessage,
        originating_actor_id: str,
    ) -> int:
        """Notify up to ``batch_cap`` recipients. Returns the number delivered."""
        batch = list(recipients)[: self._batch_cap]
        skipped = len(recipients) - len(batch)
        if skipped > 0:
            Log.warning(f"Notification cap reached, {skipped} recipients not notified")

        delivered = 0
        failed = 0
        for actor_id in batch:
            try:
                self._notifier.notify(
                    actor_id,
                    message.title,
                    message.message,
                    message.link,
                    originating_actor_id,
                )
                delivered += 1
            except NotifierError as exc:
                failed += 1
                Log.warning(f"Notification delivery failed: {exc}")
            except Exception:
                failed += 1
                Log.exception("Unexpected notifier failure")

        if failed:
            Log.warning(f"{failed} of {len(batch)} notifications failed for {message.link}")
        return delivered
