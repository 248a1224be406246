from __future__ import annotations

from typing import Optional

import httpx

from tenantkit.domain.errors import DeliveryFailure
from tenantkit.domain.ports.notification_channel import NotificationChannelPort


class HttpEmailChannel(NotificationChannelPort):
    """
    Email delivery through an HTTP mail relay (the notify-mock service in
    development): POST {base_url}/send with {"to", "subject", "body"}.
    """

    name = "email"

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        send_path: str = "/send",
        subject: str = "Your verification code",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._send_path = send_path if send_path.startswith("/") else f"/{send_path}"
        self._subject = subject
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, destination: str, message: str) -> None:
        url = f"{self._base_url}{self._send_path}"
        payload = {"to": destination, "subject": self._subject, "body": message}

        try:
            resp = await self._client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise DeliveryFailure(f"SMTP HTTP error: {e}") from e
        if not (200 <= resp.status_code < 300):
            raise DeliveryFailure(f"SMTP responded {resp.status_code}: {resp.text[:200]}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
