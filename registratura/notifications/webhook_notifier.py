import httpx

from registratura.notifications.base import BaseNotifier
from registratura.notifications.exceptions import NotifierError, NotifierNetworkError


class WebhookNotifier(BaseNotifier):
    """Posts notifications as JSON to an HTTP endpoint (mail relay, chat bridge)."""

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: int,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def notify(
        self,
        actor_id: str,
        title: str,
        message: str,
        link: str,
        originating_actor_id: str,
    ) -> None:
        payload = {
            "recipient_id": actor_id,
            "title": title,
            "message": message,
            "link": link,
            "originating_actor_id": originating_actor_id,
            "module": "registratura",
        }
        try:
            response = self._client.post(self._url, json=payload)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise NotifierNetworkError(f"Notification endpoint unreachable: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NotifierError(f"Notification request failed: {exc}") from exc

        if response.is_error:
            raise NotifierError(
                f"Notification endpoint answered {response.status_code}"
            )

    def close(self) -> None:
        self._client.close()
