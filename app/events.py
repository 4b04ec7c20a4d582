import logging

from fastapi import FastAPI
from redis.exceptions import RedisError

from app.db.init_db import init_db
from app.db.session import engine
from app.utils.redis_client import get_redis_client

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Application startup")
        await init_db()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        try:
            await get_redis_client().aclose()
        except RedisError as exc:
            logger.warning("Redis close failed: %s", exc)
        await engine.dispose()
