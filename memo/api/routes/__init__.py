from fastapi import APIRouter

from memo.api.routes.analyze import router as analyze_router
from memo.api.routes.health import router as health_router

api_router = APIRouter()

# Health check routes (no prefix for /health, /ping, etc.)
api_router.include_router(health_router)

api_router.include_router(analyze_router, prefix="/api", tags=["analyze"])
