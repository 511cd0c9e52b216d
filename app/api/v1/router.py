from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.rfps import router as rfps_router
from app.api.v1.bids import router as bids_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])

# ------------------------------------------------------------------
# PROCUREMENT
# ------------------------------------------------------------------
v1_router.include_router(rfps_router, tags=["rfps"])
v1_router.include_router(bids_router, tags=["bids"])
