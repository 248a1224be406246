from __future__ import annotations

from typing import Any, Protocol

from tenantkit.domain.entities import TenantIdentity


class TenantResolverPort(Protocol):
    def resolve(self, context: Any) -> TenantIdentity | None:
        """Current tenant for a request context, or None when there is none."""
