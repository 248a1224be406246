from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from tenantkit.application.otp_store import OtpStore, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReapOutcome:
    ran_at: datetime
    count: int | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ExpiredOtpReaper:
    """
    Purges expired OTP records. Safe to call as often as the scheduler likes:
    a run with nothing newly expired deletes nothing and returns 0.
    Failures are logged and re-raised; retrying is the scheduler's call.
    """

    def __init__(self, store: OtpStore, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock
        self.last_outcome: ReapOutcome | None = None

    async def purge(self, now: datetime | None = None) -> int:
        now = now or self._clock()
        try:
            count = await self._store.delete_expired(now)
        except Exception as e:
            self.last_outcome = ReapOutcome(ran_at=now, error=str(e))
            logger.error("failed to clean up expired otps", extra={"error": str(e)})
            raise
        self.last_outcome = ReapOutcome(ran_at=now, count=count)
        logger.info("cleaned up expired otps", extra={"count": count})
        return count
