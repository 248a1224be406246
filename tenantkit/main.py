from contextlib import asynccontextmanager

from fastapi import FastAPI

from tenantkit.application.scoped_cache import TenantCacheFactory
from tenantkit.domain.ports.cache_store import CacheStorePort
from tenantkit.infrastructure.db.pool import close_pool, get_pool
from tenantkit.infrastructure.http.client import (
    close_http_client,
    get_http_client,
    open_http_client,
)
from tenantkit.infrastructure.memory.cache_store import InMemoryCacheStore
from tenantkit.infrastructure.notifications.email_channel import HttpEmailChannel
from tenantkit.infrastructure.notifications.sms_channel import (
    HttpSmsChannel,
    LoggingSmsChannel,
)
from tenantkit.infrastructure.redis_cache.cache_store import RedisCacheStore
from tenantkit.infrastructure.redis_cache.pool import close_redis, get_redis
from tenantkit.logging import setup_logging
from tenantkit.presentation.api import api
from tenantkit.settings import Settings, get_settings

settings = get_settings()


def build_cache_store(config: Settings) -> CacheStorePort:
    if config.cache_backend == "memory":
        return InMemoryCacheStore()
    return RedisCacheStore(get_redis())


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    pool = get_pool()
    await pool.open()

    await open_http_client(timeout=settings.sms_timeout_seconds)

    app.state.cache_factory = TenantCacheFactory(
        build_cache_store(settings),
        prefix=settings.cache_prefix,
        default_ttl=settings.cache_default_ttl,
        read_failure_as_miss=settings.cache_read_failure_as_miss,
    )

    # channels share the HTTP client; their aclose() leaves it open
    if settings.sms_provider == "http":
        sms_channel = HttpSmsChannel(
            settings.sms_provider_url,
            api_key=settings.sms_api_key,
            sender_id=settings.sms_sender_id,
            client=get_http_client(),
        )
    else:
        sms_channel = LoggingSmsChannel()
    app.state.sms_channel = sms_channel

    email_channel = None
    if settings.email_delivery_enabled:
        email_channel = HttpEmailChannel(
            base_url=settings.smtp_base_url, client=get_http_client()
        )
    app.state.email_channel = email_channel

    try:
        yield
    finally:
        # shutdown
        await sms_channel.aclose()
        if email_channel is not None:
            await email_channel.aclose()
        await close_http_client()
        await close_redis()
        await close_pool()


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Tenant OTP API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.include_router(api)
    return app


app = create_app()
