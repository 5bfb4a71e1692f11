# chatapp/models/message.py

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from chatapp.db.base_class import Base
from chatapp.models.base import ReadSchema, WriteSchema
from chatapp.models.user import UserPublic, utcnow


class Message(Base):
    """A direct message. Rows are never updated after insert."""

    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    text = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    sticker = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class MessageCreate(WriteSchema):
    text: Optional[str] = None
    image: Optional[str] = None
    sticker: Optional[str] = None


class MessageRead(ReadSchema):
    # None for system messages, which are not stored
    id: Optional[int] = None
    sender_id: int
    receiver_id: int
    text: Optional[str] = None
    image: Optional[str] = None
    sticker: Optional[str] = None
    created_at: datetime
    system: bool = False


class LastMessage(ReadSchema):
    text: Optional[str] = None
    image: Optional[str] = None
    sticker: Optional[str] = None
    created_at: datetime
    is_sent_by_logged_in_user: bool


class SidebarUser(UserPublic):
    email: str
    last_message: Optional[LastMessage] = None
