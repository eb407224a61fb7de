"""
Realtime event publisher.

Message changes are announced on a Redis pub/sub channel per order item.
Delivery to browsers is someone else's job; publishing is best-effort and
never fails the request that triggered it.
"""

import json
import logging
from typing import Any, Dict

from adorder.app.core.redis_client import get_redis

logger = logging.getLogger(__name__)


def message_channel(order_item_id: int) -> str:
    return f"order-item:{order_item_id}:messages"


async def publish_message_event(order_item_id: int, event: str, payload: Dict[str, Any]) -> bool:
    """
    Publish ``{"event", "order_item_id", "data"}`` to the item's channel.

    Returns:
        True if published, False if Redis was unavailable
    """
    body = json.dumps(
        {"event": event, "order_item_id": order_item_id, "data": payload},
        default=str,
    )
    try:
        client = await get_redis()
        await client.publish(message_channel(order_item_id), body)
        return True
    except Exception as e:
        logger.warning("Failed to publish %s for order item %s: %s", event, order_item_id, e)
        return False
