from registratura.config.settings import Settings
from registratura.database.repositories.notification_repository import NotificationRepository
from registratura.notifications.base import BaseNotifier
from registratura.notifications.database_notifier import DatabaseNotifier
from registratura.notifications.log_notifier import LogNotifier
from registratura.notifications.webhook_notifier import WebhookNotifier


class NotifierFactory:
    """Creates the notifier selected in settings."""

    PROVIDERS = ("database", "webhook", "log")

    @classmethod
    def create(cls, settings: Settings) -> BaseNotifier:
        provider = settings.notifier_provider.lower()
        if provider == "database":
            return DatabaseNotifier(NotificationRepository())
        if provider == "log":
            return LogNotifier()
        if provider == "webhook":
            url = settings.notifier_webhook_url.strip()
            if not url:
                raise ValueError(
                    "notifier_webhook_url is required for notifier_provider=webhook"
                )
            return WebhookNotifier(url=url, timeout_seconds=settings.notifier_timeout_seconds)
        raise ValueError(
            f"Unknown notifier provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
