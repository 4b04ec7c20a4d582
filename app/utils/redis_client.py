from functools import lru_cache

from redis.asyncio import Redis

from app.core.settings import settings


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    return Redis.from_url(settings.redis_url, decode_responses=True)


def redis_key(*parts: object) -> str:
    """Build a namespaced key/channel name: ``<prefix>:<part>:<part>``."""
    return ":".join([settings.relay_channel_prefix, *(str(part) for part in parts)])
