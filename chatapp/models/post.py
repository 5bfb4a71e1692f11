# chatapp/models/post.py

import enum
from datetime import datetime
from typing import List, Optional

from pydantic import Field
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from chatapp.db.base_class import Base
from chatapp.models.base import ReadSchema, WriteSchema
from chatapp.models.user import UserPublic, utcnow


class PostPrivacy(str, enum.Enum):
    PUBLIC = "public"
    FRIENDS = "friends"
    PRIVATE = "private"


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, default="", nullable=False)
    media = Column(JSON, default=list, nullable=False)
    background = Column(String(100), default="", nullable=False)
    feeling = Column(JSON, default=dict, nullable=False)
    privacy = Column(
        Enum(
            PostPrivacy,
            native_enum=False,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        default=PostPrivacy.PUBLIC,
        nullable=False,
    )
    pinned = Column(Boolean, default=False, nullable=False)
    like_count = Column(Integer, default=0, nullable=False)
    comment_count = Column(Integer, default=0, nullable=False)
    deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User")


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_likes_post_user"),)

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User")


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    parent_id = Column(Integer, ForeignKey("comments.id"), nullable=True)
    deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User")


class MediaItem(WriteSchema):
    url: str
    type: str = Field(pattern="^(image|video|sticker)$")
    thumbnail: Optional[str] = None


class Feeling(WriteSchema):
    icon: str = ""
    label: str = ""


class PostCreate(WriteSchema):
    content: str = ""
    media: List[MediaItem] = []
    privacy: PostPrivacy = PostPrivacy.PUBLIC
    background: str = ""
    feeling: Feeling = Feeling()


class PostUpdate(WriteSchema):
    content: Optional[str] = None
    media: Optional[List[MediaItem]] = None
    privacy: Optional[PostPrivacy] = None
    background: Optional[str] = None
    feeling: Optional[Feeling] = None


class PrivacyUpdate(WriteSchema):
    privacy: PostPrivacy


class CommentCreate(WriteSchema):
    content: str


class PostRead(ReadSchema):
    id: int
    user_id: int
    user: UserPublic
    content: str
    media: list
    background: str
    feeling: dict
    privacy: PostPrivacy
    pinned: bool
    like_count: int
    comment_count: int
    created_at: datetime
    updated_at: datetime
    liked_by_me: bool = False


class CommentRead(ReadSchema):
    id: int
    post_id: int
    user_id: int
    user: UserPublic
    content: str
    parent_id: Optional[int] = None
    created_at: datetime


class LikeRead(ReadSchema):
    id: int
    post_id: int
    user: UserPublic
    created_at: datetime
