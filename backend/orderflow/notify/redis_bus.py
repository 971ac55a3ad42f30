"""Redis pub/sub transport for station displays.

Each display subscribes to its role channel (``orderflow:kitchen_room``,
...). Messages are JSON: ``{"event": ..., "payload": {...}}``. Redis
pub/sub only reaches subscribers connected at publish time, which is the
at-most-once contract the lifecycle expects.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import redis.asyncio as aioredis
import structlog

from orderflow.config import NotificationConfig
from orderflow.notify.bus import EVENT_AUDIENCES, EventName, role_channel

log = structlog.get_logger()


class RedisNotificationBus:
    """NotificationBus over ``redis.asyncio`` PUBLISH."""

    def __init__(
        self,
        client: aioredis.Redis,
        channel_prefix: str = "orderflow",
    ) -> None:
        self._client = client
        self._prefix = channel_prefix

    @classmethod
    def from_config(cls, config: NotificationConfig) -> RedisNotificationBus:
        client = aioredis.from_url(
            config.redis_url,
            decode_responses=True,
            socket_connect_timeout=config.connect_timeout_seconds,
        )
        return cls(client, config.channel_prefix)

    async def publish(self, event: EventName, payload: Mapping[str, Any]) -> None:
        message = json.dumps(
            {"event": event.value, "payload": dict(payload)},
            default=str,
        )
        for role in EVENT_AUDIENCES[event]:
            channel = role_channel(self._prefix, role)
            receivers = await self._client.publish(channel, message)
            log.debug(
                "notification_published",
                notify_event=event.value,
                channel=channel,
                receivers=receivers,
            )

    async def close(self) -> None:
        await self._client.aclose()
