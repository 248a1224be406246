from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Literal

import tenantkit.domain.services as domain_services
from tenantkit.application.otp_store import OtpStore, utcnow
from tenantkit.domain.entities import OtpRecord
from tenantkit.domain.errors import DeliveryFailure
from tenantkit.domain.ports.notification_channel import NotificationChannelPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueResult:
    record: OtpRecord
    channel: Literal["sms", "email"] | None
    delivered: bool
    error: str | None = None


class OtpManager:
    """
    Issues and validates one-time passcodes.

    There is no stored state field: a record is valid while it exists and
    `now < expires_at`, consumed once deleted by `validate`, expired after.
    """

    def __init__(
        self,
        store: OtpStore,
        sms_channel: NotificationChannelPort,
        email_channel: NotificationChannelPort | None = None,
        *,
        code_length: int = 6,
        ttl_seconds: int = 300,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._sms = sms_channel
        self._email = email_channel
        self._code_length = code_length
        self._ttl = timedelta(seconds=ttl_seconds)
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    async def issue(self, identifier: str) -> IssueResult:
        code = domain_services.generate_numeric_code(self._code_length)
        expires_at = self._clock() + self._ttl
        record = await self._store.create(identifier, code, expires_at)

        if domain_services.is_phone_number(identifier):
            kind, channel = "sms", self._sms
        else:
            kind, channel = "email", self._email

        if channel is None:
            logger.info(
                "otp issued without delivery",
                extra={"otp_id": record.id, "channel": kind},
            )
            return IssueResult(record=record, channel=None, delivered=False)

        message = domain_services.otp_message(code, self._ttl_seconds)
        try:
            await channel.send(identifier, message)
        except DeliveryFailure as e:
            # the record stays valid; resending is up to the caller
            logger.warning(
                "otp delivery failed",
                extra={"otp_id": record.id, "channel": kind, "reason": e.reason},
            )
            return IssueResult(record=record, channel=kind, delivered=False, error=e.reason)

        logger.info(
            "otp issued",
            extra={"otp_id": record.id, "channel": kind, "expires_at": expires_at.isoformat()},
        )
        return IssueResult(record=record, channel=kind, delivered=True)

    async def validate(self, identifier: str, code: str) -> bool:
        record = await self._store.find_latest_valid(identifier, code)
        if record is None:
            return False
        if record.is_expired(self._clock()):
            return False
        # only the caller whose delete removed the row wins
        return await self._store.delete(record)
