from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import suppress

from tenantkit.application.otp_store import OtpStore
from tenantkit.application.reaper import ExpiredOtpReaper
from tenantkit.domain.errors import PersistenceFailure
from tenantkit.infrastructure.db.otp_repo import PgOtpRepository
from tenantkit.infrastructure.db.pool import close_pool, get_pool
from tenantkit.logging import setup_logging
from tenantkit.settings import get_settings

logger = logging.getLogger(__name__)


async def run_periodically(
    reaper: ExpiredOtpReaper, *, interval: float, stop: asyncio.Event
) -> int:
    """
    Purge on every tick until `stop` is set. A failed run is already logged
    by the reaper; the next tick is the retry. Returns the number of runs.
    """
    runs = 0
    while not stop.is_set():
        runs += 1
        with suppress(PersistenceFailure):
            await reaper.purge()
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=interval)
    return runs


async def _run() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)

    pool = get_pool()
    await pool.open()
    logger.info("reaper: pool opened")

    reaper = ExpiredOtpReaper(OtpStore(PgOtpRepository(pool)))
    stop = asyncio.Event()

    def _on_signal(*_: object) -> None:
        logger.info("reaper: stop signal received")
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_signal)

    logger.info(
        "reaper: started", extra={"interval_s": settings.reaper_interval_seconds}
    )
    try:
        await run_periodically(
            reaper, interval=settings.reaper_interval_seconds, stop=stop
        )
    finally:
        await close_pool()
        logger.info("reaper: stopped cleanly")


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
