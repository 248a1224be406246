from fastapi import APIRouter

from tenantkit.presentation.routers.v1.cache import router as cache_router
from tenantkit.presentation.routers.v1.otp import router as otp_router
from tenantkit.presentation.routes.health import router as health_router

api = APIRouter()

# Add all v1 routers here
routers = (otp_router, cache_router)
for router in routers:
    api.include_router(router, prefix="/v1")

api.include_router(health_router)
