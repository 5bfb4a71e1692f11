# chatapp/common/fanout.py
"""
Best-effort delivery of domain events to live connections.

Targets are resolved through the presence registry; offline users are
skipped and pick the change up from the REST endpoints on their next load.
Nothing here raises into the calling request.
"""

import enum
import logging
from typing import Any, Iterable, Optional

from starlette.websockets import WebSocketDisconnect

from chatapp.common.presence import PresenceRegistry
from chatapp.models.friendship import FriendshipRead
from chatapp.models.message import MessageRead
from chatapp.models.notification import NotificationRead
from chatapp.models.post import CommentRead, PostRead

logger = logging.getLogger(__name__)


class Event(str, enum.Enum):
    NEW_MESSAGE = "newMessage"
    TYPING = "typing"
    STOP_TYPING = "stopTyping"
    FRIENDSHIP_UPDATE = "friendshipUpdate"
    NEW_POST = "newPost"
    POST_LIKE_UPDATE = "postLikeUpdate"
    POST_COMMENT_UPDATE = "postCommentUpdate"
    POST_NOTIFICATION = "postNotification"
    NOTIFICATION = "notification"


class FriendshipTransition(str, enum.Enum):
    REQUEST_SENT = "request_sent"
    REQUEST_ACCEPTED = "request_accepted"
    REQUEST_DECLINED = "request_declined"
    REQUEST_CANCELLED = "request_cancelled"
    UNFRIENDED = "unfriended"


class FanOut:
    def __init__(self, registry: PresenceRegistry) -> None:
        self.registry = registry

    async def push(self, user_ids: Iterable[int], event: str, payload: Any) -> int:
        """Send ``payload`` to every online target. Returns the number delivered."""
        name = event.value if isinstance(event, Event) else event
        frame = {"event": name, "data": payload}
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            connection = self.registry.resolve(user_id)
            if connection is None:
                continue
            try:
                await connection.send_json(frame)
            except (RuntimeError, WebSocketDisconnect) as exc:
                logger.warning("Push of %s to user %s failed: %s", name, user_id, exc)
                await self.registry.unregister(user_id, connection)
                continue
            delivered += 1
        return delivered

    async def broadcast(self, event: str, payload: Any) -> int:
        return await self.push(self.registry.online_user_ids(), event, payload)

    async def new_message(self, message: MessageRead, user_ids: Iterable[int]) -> int:
        return await self.push(user_ids, Event.NEW_MESSAGE, message.to_payload())

    async def typing(self, sender_id: int, receiver_id: int, is_typing: bool) -> int:
        event = Event.TYPING if is_typing else Event.STOP_TYPING
        return await self.push([receiver_id], event, {"senderId": sender_id})

    async def friendship_update(
        self, kind: FriendshipTransition, friendship: FriendshipRead
    ) -> int:
        payload = {"type": kind.value, "friendship": friendship.to_payload()}
        return await self.push(
            [friendship.requester_id, friendship.recipient_id],
            Event.FRIENDSHIP_UPDATE,
            payload,
        )

    async def _to_audience(self, user_ids: Optional[Iterable[int]], event: str, payload: Any) -> int:
        # None means the post is public
        if user_ids is None:
            return await self.broadcast(event, payload)
        return await self.push(user_ids, event, payload)

    async def new_post(self, post: PostRead, user_ids: Optional[Iterable[int]] = None) -> int:
        return await self._to_audience(user_ids, Event.NEW_POST, post.to_payload())

    async def post_like_update(
        self, post_id: int, like_count: int, user_id: int, user_ids: Optional[Iterable[int]] = None
    ) -> int:
        payload = {"postId": post_id, "likeCount": like_count, "userId": user_id}
        return await self._to_audience(user_ids, Event.POST_LIKE_UPDATE, payload)

    async def post_comment_update(
        self, post_id: int, comment: CommentRead, user_ids: Optional[Iterable[int]] = None
    ) -> int:
        payload = {"postId": post_id, "comment": comment.to_payload()}
        return await self._to_audience(user_ids, Event.POST_COMMENT_UPDATE, payload)

    async def notification(self, notification: NotificationRead) -> int:
        event = Event.POST_NOTIFICATION if notification.type.is_post_related else Event.NOTIFICATION
        return await self.push([notification.recipient_id], event, notification.to_payload())

    async def notifications_read(self, user_id: int) -> int:
        payload = {"type": "all_read", "message": "All notifications marked as read"}
        return await self.push([user_id], Event.NOTIFICATION, payload)
