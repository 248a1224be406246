"""
Tenant-scoped cache key derivation.

Key schema:
    {prefix}:{tenant}:{logical_key}

where {tenant} is the percent-encoded tenant id, or the reserved sentinel
"none" when there is no tenant context (the global partition). Encoding
keeps ':' out of the tenant segment, so the first two separators always
delimit it and no tenant can address another tenant's keys.

Examples:
    namespaced_key(TenantIdentity(7), "plans")   -> "tenant:7:plans"
    namespaced_key(None, "plans")                -> "tenant:none:plans"
    tag(TenantIdentity("acme:eu"))               -> "tenant:acme%3Aeu"

Tenant ids are compared by their string form: TenantIdentity(7) and
TenantIdentity("7") share one namespace, so a deployment must not mix
int and str ids that differ only in type.

Tenant ids that encode to the sentinel are rejected; the tenant registry is
expected to refuse them at creation time.
"""

from __future__ import annotations

from urllib.parse import quote

from tenantkit.domain.entities import TenantIdentity

DEFAULT_PREFIX = "tenant"
NO_TENANT = "none"


def tenant_segment(tenant: TenantIdentity | None) -> str:
    if tenant is None:
        return NO_TENANT
    segment = quote(str(tenant.id), safe="")
    if segment == NO_TENANT:
        raise ValueError(f"tenant id {tenant.id!r} collides with the no-tenant sentinel")
    return segment


def tag(tenant: TenantIdentity | None, prefix: str = DEFAULT_PREFIX) -> str:
    """Label shared by every key of one tenant; used for bulk invalidation."""
    return f"{prefix}:{tenant_segment(tenant)}"


def namespaced_key(
    tenant: TenantIdentity | None, logical_key: str, prefix: str = DEFAULT_PREFIX
) -> str:
    return f"{tag(tenant, prefix)}:{logical_key}"
