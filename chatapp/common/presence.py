# chatapp/common/presence.py
"""Process-wide map from user id to that user's live connection."""

import logging
from typing import Dict, List, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

logger = logging.getLogger(__name__)

ONLINE_USERS_EVENT = "getOnlineUsers"


class PresenceRegistry:
    """
    Single live connection per user; the most recent connection wins.

    Every change is followed by a broadcast of the full online id list so
    presence indicators stay current on every client.
    """

    def __init__(self) -> None:
        self._connections: Dict[int, WebSocket] = {}

    def resolve(self, user_id: int) -> Optional[WebSocket]:
        return self._connections.get(user_id)

    def online_user_ids(self) -> List[int]:
        return sorted(self._connections)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    async def register(self, user_id: int, connection: WebSocket) -> None:
        previous = self._connections.get(user_id)
        self._connections[user_id] = connection
        if previous is not None and previous is not connection:
            logger.info("User %s reconnected, replacing previous connection", user_id)
        else:
            logger.info("User %s connected", user_id)
        await self.broadcast_online_users()

    async def unregister(self, user_id: int, connection: Optional[WebSocket] = None) -> bool:
        """
        Drop the entry for ``user_id``. Returns False when nothing was removed.

        With ``connection`` given, only that exact handle is removed, so a
        superseded socket closing late does not evict its replacement.
        """
        current = self._connections.get(user_id)
        if current is None:
            return False
        if connection is not None and current is not connection:
            return False
        del self._connections[user_id]
        logger.info("User %s disconnected", user_id)
        await self.broadcast_online_users()
        return True

    async def broadcast_online_users(self) -> None:
        # Dropping a dead connection changes the set, so announce again until stable
        dropped = True
        while dropped:
            dropped = False
            frame = {"event": ONLINE_USERS_EVENT, "data": self.online_user_ids()}
            # Copy first: a failed send mutates the map
            for user_id, connection in list(self._connections.items()):
                try:
                    await connection.send_json(frame)
                except (RuntimeError, WebSocketDisconnect) as exc:
                    logger.warning("Dropping dead connection for user %s: %s", user_id, exc)
                    if self._connections.get(user_id) is connection:
                        del self._connections[user_id]
                        dropped = True

    async def close(self) -> None:
        self._connections.clear()
