from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.settings import settings
from app.db.session import engine
from app.utils.redis_client import get_redis_client

APP_VERSION = "0.1.0"

logger = logging.getLogger(__name__)


async def _run_check(name: str, check: Callable[[], Awaitable[Any]], errors: tuple) -> dict[str, str]:
    try:
        await check()
    except errors as exc:
        logger.warning("readiness check %s failed: %s", name, exc)
        return {"status": "error", "error": type(exc).__name__}
    return {"status": "ok"}


async def _select_one() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _check_db() -> dict[str, str]:
    return await _run_check("database", _select_one, (SQLAlchemyError, OSError))


async def _check_redis() -> dict[str, str]:
    return await _run_check("redis", get_redis_client().ping, (RedisError, OSError))


async def live_payload() -> dict[str, str]:
    return {"status": "ok", "version": APP_VERSION, "timestamp": datetime.now(timezone.utc).isoformat()}


async def ready_payload() -> dict[str, Any]:
    """Readiness stays HTTP 200; ``ready`` tells the orchestrator whether to route traffic."""
    checks = {"database": await _check_db(), "redis": await _check_redis()}
    ready = all(result["status"] == "ok" for result in checks.values())
    return {
        "status": "ok" if ready else "degraded",
        "ready": ready,
        "environment": settings.environment,
        "version": APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
