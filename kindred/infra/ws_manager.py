"""
WebSocket Manager - tracks client connections and delivers pushed events.

1. Per-user connection tracking (a user may hold several connections)
2. Channel subscriptions; every connection joins its own user:{id} channel
3. Dead connections are dropped on the first failed send
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import WebSocket

from .event_pusher import user_channel

logger = logging.getLogger(__name__)


@dataclass
class ConnectionInfo:
    websocket: WebSocket
    user_id: str
    connection_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    subscribed_channels: set[str] = field(default_factory=set)


class WebSocketManager:
    """
    WebSocket connection manager.

    - connections keyed by user_id (multiple per user)
    - channel_id -> subscribed connections
    """

    def __init__(self):
        # connection_id -> ConnectionInfo
        self._connections: dict[str, ConnectionInfo] = {}
        # user_id -> connection ids
        self._user_connections: dict[str, set[str]] = {}
        # channel_id -> connection ids
        self._channel_subscribers: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()
        self._connection_counter = 0

    def _generate_connection_id(self, user_id: str) -> str:
        self._connection_counter += 1
        return f"{user_id}_{self._connection_counter}"

    async def connect(self, websocket: WebSocket, user_id: str) -> Optional[str]:
        """
        Accept a connection and subscribe it to the user's own channel.

        Returns the connection id, or None if the handshake failed.
        """
        try:
            await websocket.accept()
        except Exception as e:
            logger.error("WebSocket accept failed for %s: %s", user_id, e)
            return None

        channel = user_channel(user_id)
        async with self._lock:
            connection_id = self._generate_connection_id(user_id)
            self._connections[connection_id] = ConnectionInfo(
                websocket=websocket,
                user_id=user_id,
                connection_id=connection_id,
                subscribed_channels={channel},
            )
            self._user_connections.setdefault(user_id, set()).add(connection_id)
            self._channel_subscribers.setdefault(channel, set()).add(connection_id)

        logger.info("WebSocket connected: %s (conn_id: %s)", user_id, connection_id)
        return connection_id

    async def disconnect(self, user_id: str, connection_id: Optional[str] = None) -> None:
        """Drop one connection, or every connection of the user."""
        async with self._lock:
            if connection_id is not None:
                conn_ids = [connection_id]
            else:
                conn_ids = list(self._user_connections.get(user_id, ()))

            for conn_id in conn_ids:
                conn = self._connections.pop(conn_id, None)
                if conn is None:
                    continue
                for channel_id in conn.subscribed_channels:
                    subscribers = self._channel_subscribers.get(channel_id)
                    if subscribers is not None:
                        subscribers.discard(conn_id)
                        if not subscribers:
                            del self._channel_subscribers[channel_id]
                owned = self._user_connections.get(user_id)
                if owned is not None:
                    owned.discard(conn_id)
                    if not owned:
                        del self._user_connections[user_id]
                logger.info("WebSocket disconnected: %s (conn_id: %s)", user_id, conn_id)

    async def subscribe_channel(self, user_id: str, channel_id: str) -> None:
        """Subscribe all of a user's connections to an extra channel."""
        async with self._lock:
            for conn_id in self._user_connections.get(user_id, ()):
                self._channel_subscribers.setdefault(channel_id, set()).add(conn_id)
                self._connections[conn_id].subscribed_channels.add(channel_id)
        logger.debug("User %s subscribed to channel %s", user_id, channel_id)

    async def _send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        conn = self._connections.get(connection_id)
        if conn is None:
            return False
        try:
            await conn.websocket.send_json(message)
            return True
        except Exception as e:
            logger.error("Send to connection %s failed: %s", connection_id, e)
            return False

    async def broadcast_to_channel(self, channel_id: str, message: dict[str, Any]) -> int:
        """Send to every subscriber of a channel. Returns the number delivered."""
        subscribers = self._channel_subscribers.get(channel_id)
        if not subscribers:
            return 0

        success_count = 0
        failed_connections = []
        for conn_id in list(subscribers):
            if await self._send_to_connection(conn_id, message):
                success_count += 1
            else:
                failed_connections.append(conn_id)

        for conn_id in failed_connections:
            conn = self._connections.get(conn_id)
            if conn is not None:
                await self.disconnect(conn.user_id, conn_id)

        return success_count

    def get_connection_count(self) -> int:
        return len(self._connections)

    def get_user_connection_count(self, user_id: str) -> int:
        return len(self._user_connections.get(user_id, ()))

    def is_connected(self, user_id: str) -> bool:
        return bool(self._user_connections.get(user_id))

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_connections": len(self._connections),
            "total_users": len(self._user_connections),
            "total_channels": len(self._channel_subscribers),
        }
