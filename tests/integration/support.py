from registratura.notifications.base import BaseNotifier


class CollectingNotifier(BaseNotifier):
    """Keeps recipient ids in delivery order."""

    def __init__(self) -> None:
        self.recipients: list[str] = []

    def notify(
        self,
        actor_id: str,
        title: str,
        message: str,
        link: str,
        originating_actor_id: str,
    ) -> None:
        self.recipients.append(actor_id)
