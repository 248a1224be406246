from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis

from tenantkit.settings import get_settings

_client: Optional[Redis] = None


def get_redis() -> Redis:
    """
    Lazy singleton Redis client using REDIS_URL from settings.
    decode_responses=True -> we get/put str, not bytes.
    Socket timeouts keep a dead server from hanging cache calls.
    """
    global _client
    if _client is None:
        url = get_settings().redis_url
        _client = Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=3,
        )
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
