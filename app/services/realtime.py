from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable
from uuid import UUID

from fastapi import BackgroundTasks
from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError

from app.core.settings import settings
from app.utils.redis_client import get_redis_client, redis_key

logger = logging.getLogger(__name__)

USER_CHANNEL = "user"


def channel_for_user(user_id: UUID | str) -> str:
    return redis_key(USER_CHANNEL, user_id)


async def publish_user_event(user_id: UUID | str, event: str, payload: dict[str, Any]) -> bool:
    """Push one event to a user's relay channel.

    Call only after the transaction that produced the event has committed.
    Relay failures and slow relays are logged and reported as ``False``;
    they never fail the request that triggered them.
    """
    message = json.dumps({"event": event, "payload": jsonable_encoder(payload)})
    try:
        await asyncio.wait_for(
            get_redis_client().publish(channel_for_user(user_id), message),
            timeout=settings.relay_publish_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("Relay publish of %s to user %s timed out", event, user_id)
        return False
    except (RedisError, OSError) as exc:
        logger.warning("Relay publish of %s to user %s failed: %s", event, user_id, exc)
        return False
    return True


async def publish_to_users(user_ids: Iterable[UUID | str], event: str, payload: dict[str, Any]) -> int:
    results = await asyncio.gather(*(publish_user_event(user_id, event, payload) for user_id in user_ids))
    return sum(1 for delivered in results if delivered)


def schedule_fan_out(
    background: BackgroundTasks,
    user_ids: Iterable[UUID | str],
    event: str,
    payload: dict[str, Any],
) -> None:
    """Queue the relay publish to run after the response has been sent."""
    background.add_task(publish_to_users, list(user_ids), event, payload)
