from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from tenantkit.application.scoped_cache import ScopedCache
from tenantkit.domain.errors import CacheUnavailable
from tenantkit.presentation.dependencies import get_tenant_cache
from tenantkit.schemas.responses import FlushOut

router = APIRouter(prefix="/cache", tags=["Cache"])


@router.delete("", response_model=FlushOut)
async def delete_tenant_cache(
    cache: Annotated[ScopedCache, Depends(get_tenant_cache)],
):
    try:
        removed = await cache.flush()
    except CacheUnavailable:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="cache unavailable",
        )
    return FlushOut(removed=removed)
