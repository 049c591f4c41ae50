"""
EventPusher implementations: push match/chat events to clients.

Provides three implementations:
- WebSocketEventPusher: sends to each recipient's channel (production)
- NullEventPusher: silently discards (headless / testing)
- LoggingEventPusher: logs events (debugging / CI)
"""

from __future__ import annotations

import logging
from typing import Any

from kindred.core.events import KindredEvent

logger = logging.getLogger(__name__)


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


class NullEventPusher:
    """EventPusher that silently discards all events."""

    async def push(self, event: KindredEvent) -> None:
        pass

    async def push_many(self, events: list[KindredEvent]) -> None:
        pass


class LoggingEventPusher:
    """EventPusher that logs events at INFO level."""

    async def push(self, event: KindredEvent) -> None:
        logger.info(
            "Event %s -> %s: %s",
            event.event_type.value,
            ",".join(event.recipients),
            {k: str(v)[:100] for k, v in event.data.items()},
        )

    async def push_many(self, events: list[KindredEvent]) -> None:
        for event in events:
            await self.push(event)


class WebSocketEventPusher:
    """
    EventPusher implementation that delivers events via WebSocket.

    Channel naming: user:{user_id}. Each recipient gets one copy.
    """

    def __init__(self, ws_manager: Any):
        """
        Args:
            ws_manager: A WebSocketManager instance from kindred.infra.ws_manager
        """
        self._ws_manager = ws_manager

    async def push(self, event: KindredEvent) -> None:
        """Push a single event to every recipient's channel."""
        message = event.to_dict()
        for recipient in dict.fromkeys(event.recipients):
            channel = user_channel(recipient)
            sent = await self._ws_manager.broadcast_to_channel(channel, message)
            logger.debug(
                "Pushed event %s to %s (%d connections)",
                event.event_type.value, channel, sent,
            )

    async def push_many(self, events: list[KindredEvent]) -> None:
        """Push multiple events."""
        for event in events:
            await self.push(event)
