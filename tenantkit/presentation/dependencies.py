from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from tenantkit.application.otp_manager import OtpManager
from tenantkit.application.otp_store import OtpStore
from tenantkit.application.scoped_cache import ScopedCache, TenantCacheFactory
from tenantkit.domain.entities import TenantIdentity
from tenantkit.domain.ports.notification_channel import NotificationChannelPort
from tenantkit.domain.ports.otp_repository import OtpRepositoryPort
from tenantkit.infrastructure.db.otp_repo import PgOtpRepository
from tenantkit.infrastructure.db.pool import get_pool
from tenantkit.presentation.tenant import HeaderTenantResolver
from tenantkit.settings import get_settings

_tenant_resolver = HeaderTenantResolver()


def get_otp_repository() -> OtpRepositoryPort:
    return PgOtpRepository(get_pool())


def get_sms_channel(request: Request) -> NotificationChannelPort:
    # This is set in tenantkit.main lifespan()
    return request.app.state.sms_channel


def get_email_channel(request: Request) -> NotificationChannelPort | None:
    return getattr(request.app.state, "email_channel", None)


def get_otp_manager(
    repository: Annotated[OtpRepositoryPort, Depends(get_otp_repository)],
    sms_channel: Annotated[NotificationChannelPort, Depends(get_sms_channel)],
    email_channel: Annotated[NotificationChannelPort | None, Depends(get_email_channel)],
) -> OtpManager:
    settings = get_settings()
    return OtpManager(
        OtpStore(repository),
        sms_channel,
        email_channel,
        code_length=settings.otp_code_length,
        ttl_seconds=settings.otp_ttl_seconds,
    )


def get_cache_factory(request: Request) -> TenantCacheFactory:
    return request.app.state.cache_factory


def get_current_tenant(request: Request) -> TenantIdentity | None:
    return _tenant_resolver.resolve(request)


def get_tenant_cache(
    factory: Annotated[TenantCacheFactory, Depends(get_cache_factory)],
    tenant: Annotated[TenantIdentity | None, Depends(get_current_tenant)],
) -> ScopedCache:
    try:
        return factory.for_tenant(tenant)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="invalid tenant id"
        )
