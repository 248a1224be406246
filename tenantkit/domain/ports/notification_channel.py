from __future__ import annotations

from typing import Protocol


class NotificationChannelPort(Protocol):
    name: str

    async def send(self, destination: str, message: str) -> None:
        """
        Deliver `message` to a phone number or email address.
        Raise DeliveryFailure(reason) when the provider does not accept it.
        """
