"""API v1 router configuration."""

from fastapi import APIRouter

from closing_conditions.api.v1.endpoints import conditions, health, loans

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    health.router,
    tags=["health"],
)

api_router.include_router(
    loans.router,
    prefix="/loans",
    tags=["loans"],
)

api_router.include_router(
    conditions.router,
    prefix="/conditions",
    tags=["conditions"],
)
