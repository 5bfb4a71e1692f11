# chatapp/services/notification_service.py
"""
Notification ledger: the durable, pull-based record of social events.

Rows are written in the same unit of work as the mutation that caused them,
whether or not the live push later reaches the recipient.
"""

import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from chatapp.core.exceptions import NotFound
from chatapp.models.notification import Notification, NotificationType
from chatapp.models.user import User

logger = logging.getLogger(__name__)


def render_message(kind: NotificationType, sender_name: str) -> str:
    match kind:
        case NotificationType.FRIEND_REQUEST:
            return f"{sender_name} sent you a friend request"
        case NotificationType.FRIEND_ACCEPTED:
            return f"{sender_name} accepted your friend request"
        case NotificationType.FRIEND_DECLINED:
            return f"{sender_name} declined your friend request"
        case NotificationType.POST_LIKE:
            return f"{sender_name} liked your post!"
        case NotificationType.POST_COMMENT:
            return f"{sender_name} commented on your post!"
        case NotificationType.COMMENT_REPLY:
            return f"{sender_name} replied to your comment!"
    raise ValueError(f"Unhandled notification type: {kind!r}")


class NotificationLedger:

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        recipient_id: int,
        sender_id: int,
        kind: NotificationType,
        *,
        friendship_id: Optional[int] = None,
        post_id: Optional[int] = None,
        comment_id: Optional[int] = None,
        message: Optional[str] = None,
        commit: bool = True,
    ) -> Notification:
        """
        Record one notification for ``recipient_id``.

        With ``commit=False`` the row is only flushed, so the caller can
        commit it together with the mutation that triggered it.
        """
        if message is None:
            sender = self.db.get(User, sender_id)
            message = render_message(kind, sender.full_name if sender else "Someone")

        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=kind,
            friendship_id=friendship_id,
            post_id=post_id,
            comment_id=comment_id,
            message=message,
            is_read=False,
        )
        self.db.add(notification)
        if commit:
            self.db.commit()
            self.db.refresh(notification)
        else:
            self.db.flush()
        logger.debug("Notification %s (%s) for user %s", notification.id, kind.value, recipient_id)
        return notification

    def list_for_user(self, user_id: int, limit: int = 50) -> List[Notification]:
        return (
            self.db.query(Notification)
            .options(joinedload(Notification.sender))
            .filter(Notification.recipient_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    def _owned(self, notification_id: int, user_id: int) -> Notification:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == user_id)
            .first()
        )
        # Foreign notifications look exactly like missing ones
        if notification is None:
            raise NotFound("Notification not found")
        return notification

    def mark_read(self, notification_id: int, user_id: int) -> Notification:
        notification = self._owned(notification_id, user_id)
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: int) -> int:
        result = self.db.execute(
            update(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        self.db.commit()
        return result.rowcount

    def unread_count(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    def delete(self, notification_id: int, user_id: int) -> None:
        notification = self._owned(notification_id, user_id)
        self.db.delete(notification)
        self.db.commit()
