from fastapi import Request

from tenantkit.domain.entities import TenantIdentity
from tenantkit.domain.ports.tenant_resolver import TenantResolverPort


class HeaderTenantResolver(TenantResolverPort):
    """
    Reads the tenant id from a request header. Upstream (gateway / auth)
    is trusted to have set it; a missing header means no tenant context.
    """

    def __init__(self, header: str = "X-Tenant-ID") -> None:
        self._header = header

    def resolve(self, context: Request) -> TenantIdentity | None:
        raw = context.headers.get(self._header, "").strip()
        if not raw:
            return None
        return TenantIdentity(id=raw)
