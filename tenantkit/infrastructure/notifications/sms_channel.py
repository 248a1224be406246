from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from tenantkit.domain.errors import DeliveryFailure
from tenantkit.domain.ports.notification_channel import NotificationChannelPort

logger = logging.getLogger(__name__)


class HttpSmsChannel(NotificationChannelPort):
    """
    SMS provider reached over HTTP: POST {base_url}{send_path} with
    {"to", "message", "sender_id"} and a bearer API key. Any non-2xx answer
    or transport error is a DeliveryFailure.
    """

    name = "sms"

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        sender_id: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        send_path: str = "/send",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._send_path = send_path if send_path.startswith("/") else f"/{send_path}"
        self._api_key = api_key
        self._sender_id = sender_id
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, destination: str, message: str) -> None:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        url = f"{self._base_url}{self._send_path}"
        payload = {"to": destination, "message": message}
        if self._sender_id:
            payload["sender_id"] = self._sender_id

        try:
            resp = await self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryFailure(f"SMS HTTP error: {e}") from e
        if not (200 <= resp.status_code < 300):
            raise DeliveryFailure(f"SMS provider responded {resp.status_code}: {resp.text[:200]}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LoggingSmsChannel(NotificationChannelPort):
    """Development stand-in: logs the destination instead of sending anything."""

    name = "sms"

    async def send(self, destination: str, message: str) -> None:
        logger.info("sms not sent (log provider)", extra={"to": destination})

    async def aclose(self) -> None:
        return None
