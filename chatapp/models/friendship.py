# chatapp/models/friendship.py

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from chatapp.db.base_class import Base
from chatapp.models.base import ReadSchema, WriteSchema
from chatapp.models.user import UserPublic, utcnow


class FriendshipStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


def make_pair_key(user_a: int, user_b: int) -> str:
    """Order-independent key for a pair of users."""
    low, high = sorted((int(user_a), int(user_b)))
    return f"{low}:{high}"


class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(
            FriendshipStatus,
            native_enum=False,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        default=FriendshipStatus.PENDING,
        nullable=False,
    )

    # One row per unordered pair; swapping requester/recipient is the same relationship
    pair_key = Column(String(64), unique=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    requester = relationship("User", foreign_keys=[requester_id])
    recipient = relationship("User", foreign_keys=[recipient_id])


class FriendRequestCreate(WriteSchema):
    recipient_id: int


class FriendRequestAnswer(WriteSchema):
    requester_id: int


class UnfriendRequest(WriteSchema):
    friend_id: int


class FriendshipRead(ReadSchema):
    id: int
    requester_id: int
    recipient_id: int
    status: FriendshipStatus
    requester: UserPublic
    recipient: UserPublic
    created_at: datetime
    updated_at: datetime
