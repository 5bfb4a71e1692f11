# tests/conftest.py
"""
Shared fixtures: an in-memory SQLite database per test, a TestClient wired
to it, user factories and a fake live connection that records frames.
"""

import os

# Must be set before chatapp.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chatapp.common.fanout import FanOut
from chatapp.common.presence import PresenceRegistry
from chatapp.core.security import create_access_token
from chatapp.db.base_class import Base
from chatapp.db.session import get_db
from chatapp.main import app
from chatapp.models import friendship, message, notification, post  # noqa: F401
from chatapp.models.user import User


class FakeConnection:
    """Stands in for a WebSocket: records every JSON frame sent to it."""

    def __init__(self, fail: bool = False):
        self.frames = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("Cannot call send once a close message has been sent.")
        self.frames.append(data)

    def events(self, name=None):
        return [f for f in self.frames if name is None or f["event"] == name]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def registry():
    return PresenceRegistry()


@pytest.fixture
def fanout(registry):
    return FanOut(registry)


@pytest.fixture
def connection():
    return FakeConnection


@pytest.fixture
def make_user(db):
    def _make(name: str, allow_stranger_message: bool = False) -> User:
        user = User(
            email=f"{name.lower()}@example.com",
            full_name=name,
            hashed_password="not-a-real-hash",
            profile_pic="",
            allow_stranger_message=allow_stranger_message,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def alice(make_user):
    return make_user("Alice")


@pytest.fixture
def bob(make_user):
    return make_user("Bob")


@pytest.fixture
def carol(make_user):
    return make_user("Carol")


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id)})


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _headers


@pytest.fixture
def ws_token():
    return token_for
