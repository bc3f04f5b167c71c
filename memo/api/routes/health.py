"""
Health check and diagnostic endpoints.

Provides:
- /health - Liveness plus upstream configuration summary
- /ping - Connectivity check
- /metrics - Relay counters
"""
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

from memo.core.logging import metrics

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Report service status and the upstream it relays to."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "upstream": {
            "base_url": settings.openai_base_url,
            "model": settings.openai_model,
            "api_key_configured": bool(settings.openai_api_key),
        },
    }


@router.get("/ping")
async def ping() -> dict[str, str]:
    """Simple ping endpoint for connectivity checks."""
    return {"status": "pong"}


@router.get("/metrics")
async def metrics_endpoint() -> dict[str, Any]:
    """In-memory relay metrics."""
    return metrics.snapshot()
