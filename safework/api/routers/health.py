"""Health check endpoints for SafeWork.

- /health: Basic health check
- /health/live: Liveness probe (is the app running?)
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from safework import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/live")
async def liveness_probe():
    return {"status": "alive"}
