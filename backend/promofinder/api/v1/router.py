"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from promofinder.api.v1 import deals, health, stats, translate

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(deals.router, prefix="/deals", tags=["deals"])
api_v1_router.include_router(stats.router, prefix="/stats", tags=["stats"])
api_v1_router.include_router(translate.router, prefix="/translate", tags=["translate"])
