from fastapi import APIRouter

from hitstats.api.v1 import downloads, health, hits, stats

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(hits.router, prefix="/hits", tags=["hits"])
api_router.include_router(downloads.router, prefix="/downloads", tags=["downloads"])
api_router.include_router(stats.router, prefix="/stats", tags=["stats"])
