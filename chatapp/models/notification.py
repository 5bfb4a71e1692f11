# chatapp/models/notification.py

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from chatapp.db.base_class import Base
from chatapp.models.base import ReadSchema
from chatapp.models.user import UserPublic, utcnow


class NotificationType(str, enum.Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    FRIEND_DECLINED = "friend_declined"
    POST_LIKE = "post_like"
    POST_COMMENT = "post_comment"
    COMMENT_REPLY = "comment_reply"

    @property
    def is_post_related(self) -> bool:
        return self in (
            NotificationType.POST_LIKE,
            NotificationType.POST_COMMENT,
            NotificationType.COMMENT_REPLY,
        )


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(
        Enum(
            NotificationType,
            native_enum=False,
            length=30,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )

    # Plain references; the friendship row may be gone after cancel/unfriend
    friendship_id = Column(Integer, nullable=True)
    post_id = Column(Integer, nullable=True)
    comment_id = Column(Integer, nullable=True)

    message = Column(String(500), nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])


class NotificationRead(ReadSchema):
    id: int
    recipient_id: int
    sender_id: int
    sender: Optional[UserPublic] = None
    type: NotificationType
    friendship_id: Optional[int] = None
    post_id: Optional[int] = None
    comment_id: Optional[int] = None
    message: str
    is_read: bool
    created_at: datetime
