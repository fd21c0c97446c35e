# SSE + Redis Pub/Sub: live carpool list updates
# Routers publish after commit; every API worker relays the channel to its SSE clients.
# Events carry ids, seat counts and status only, never contact data.

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import redis.asyncio as redis

from app.config import REDIS_URL

logger = logging.getLogger(__name__)

CHANNEL = "carpools:updates"
HEARTBEAT_INTERVAL = 15.0

EVENT_UPDATED = "carpool_updated"
EVENT_DELETED = "carpool_deleted"

# One module-level client, reused across requests
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


async def _publish(payload: dict) -> None:
    try:
        await redis_client.publish(CHANNEL, json.dumps(payload))
    except Exception:
        # Redis down: the stream misses an event, the write itself already committed
        logger.warning("Could not publish %s for carpool %s", payload.get("type"), payload.get("carpool_id"), exc_info=True)


async def publish_carpool_updated(
    carpool_id: int,
    status: str,
    passenger_count: int,
    max_passengers: int,
    action: Optional[str] = None,
) -> None:
    """Called after create/join/leave commit."""
    await _publish(
        {
            "type": EVENT_UPDATED,
            "carpool_id": carpool_id,
            "action": action,
            "status": status,
            "passenger_count": passenger_count,
            "max_passengers": max_passengers,
            "ts": datetime.now(timezone.utc).isoformat(),
        }
    )


async def publish_carpool_deleted(carpool_id: int) -> None:
    await _publish(
        {
            "type": EVENT_DELETED,
            "carpool_id": carpool_id,
            "ts": datetime.now(timezone.utc).isoformat(),
        }
    )


def format_sse(data: str) -> str:
    """Pub/sub payload -> SSE frame, event name taken from the payload's type."""
    try:
        event_name = json.loads(data).get("type") or EVENT_UPDATED
    except (ValueError, AttributeError):
        event_name = EVENT_UPDATED
    return f"event: {event_name}\ndata: {data}\n\n"


async def stream_carpool_events() -> AsyncGenerator[str, None]:
    """
    GET /carpools/stream.
    SSE is a long-lived connection: heartbeat every HEARTBEAT_INTERVAL, always unsubscribe on exit.
    """
    pubsub = redis_client.pubsub()
    try:
        await pubsub.subscribe(CHANNEL)
        last_heartbeat = datetime.now(timezone.utc).timestamp()

        while True:
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            now = datetime.now(timezone.utc).timestamp()
            if now - last_heartbeat >= HEARTBEAT_INTERVAL:
                yield ": ping\n\n"
                last_heartbeat = now
            if message and message.get("type") == "message":
                yield format_sse(message.get("data") or "")
    except asyncio.CancelledError:
        pass
    finally:
        await pubsub.unsubscribe(CHANNEL)
        await pubsub.close()
