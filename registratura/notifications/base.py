from abc import ABC, abstractmethod


class BaseNotifier(ABC):
    """Contract for all notification delivery adapters."""

    @abstractmethod
    def notify(
        self,
        actor_id: str,
        title: str,
        message: str,
        link: str,
        originating_actor_id: str,
    ) -> None:
        """Deliver one notification to one actor.

        Args:
            actor_id: Recipient.
            title: Short plain-text title.
            message: Body, already HTML-escaped by the caller.
            link: Relative link to the document.
            originating_actor_id: Actor whose action triggered the notification.

        Raises:
            NotifierError: on any delivery failure.
        """
