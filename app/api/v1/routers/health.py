from fastapi import APIRouter

from app.core.health import live_payload, ready_payload
from app.core.limiter import limiter

# Health checks are polled by the orchestrator and never count against rate limits.
router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live", summary="Process is up")
@limiter.exempt
async def live() -> dict:
    return await live_payload()


@router.get("/ready", summary="Database and Redis are reachable")
@limiter.exempt
async def ready() -> dict:
    return await ready_payload()
