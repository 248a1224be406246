from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from tenantkit.domain.entities import OtpRecord
from tenantkit.domain.ports.otp_repository import OtpRepositoryPort


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OtpStore:
    """
    Record management for OTP entries. Records are never updated: they are
    created on issuance and deleted on consumption or expiry.
    """

    def __init__(
        self,
        repository: OtpRepositoryPort,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock

    async def create(self, identifier: str, code: str, expires_at: datetime) -> OtpRecord:
        record = OtpRecord(
            identifier=identifier,
            code=code,
            created_at=self._clock(),
            expires_at=expires_at,
        )
        return await self._repository.insert(record)

    async def find_latest_valid(self, identifier: str, code: str) -> OtpRecord | None:
        """Newest record for identifier+code, whether or not it has expired yet."""
        records = await self._repository.query(identifier, code)
        return records[0] if records else None

    async def delete(self, record: OtpRecord) -> bool:
        if record.id is None:
            return False
        return await self._repository.delete_by_id(record.id)

    async def delete_expired(self, now: datetime) -> int:
        return await self._repository.delete_expired(now)
