from __future__ import annotations

from datetime import datetime
from typing import Protocol

from tenantkit.domain.entities import OtpRecord


class OtpRepositoryPort(Protocol):
    """
    Durable storage for OTP records. Implementations raise PersistenceFailure
    when the backend cannot complete an operation.
    """

    async def insert(self, record: OtpRecord) -> OtpRecord:
        """Persist the record and return it with its storage id set."""

    async def query(self, identifier: str, code: str) -> list[OtpRecord]:
        """
        Records matching identifier and code exactly (case-sensitive),
        newest first by created_at, ties broken by id descending.
        """

    async def delete_by_id(self, record_id: str) -> bool:
        """Delete if present. False when the row was already gone."""

    async def delete_expired(self, now: datetime) -> int:
        """Delete every record with expires_at <= now and return the count."""
