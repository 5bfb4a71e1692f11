# chatapp/models/user.py

from datetime import datetime, timezone
from typing import Optional

from pydantic import Field
from sqlalchemy import Boolean, Column, DateTime, Integer, String

from chatapp.db.base_class import Base
from chatapp.models.base import ReadSchema, WriteSchema


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    profile_pic = Column(String(500), default="")

    # Read by the messaging gate on every send
    allow_stranger_message = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class UserCreate(WriteSchema):
    email: str = Field(min_length=3, max_length=255)
    full_name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=6)


class ProfileUpdate(WriteSchema):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    profile_pic: Optional[str] = None


class StrangerMessageUpdate(WriteSchema):
    allow_stranger_message: bool


class UserPublic(ReadSchema):
    id: int
    full_name: str
    profile_pic: Optional[str] = ""


class UserRead(UserPublic):
    email: str
    allow_stranger_message: bool
    created_at: datetime
