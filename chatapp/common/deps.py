# chatapp/common/deps.py

from typing import Optional

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from chatapp.common.fanout import FanOut
from chatapp.common.presence import PresenceRegistry
from chatapp.core.security import decode_access_token
from chatapp.db.session import get_db
from chatapp.models.user import User
from chatapp.services.friendship_service import FriendshipService
from chatapp.services.message_service import MessageService
from chatapp.services.notification_service import NotificationLedger
from chatapp.services.post_service import PostService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def user_from_token(db: Session, token: str) -> Optional[User]:
    user_id = decode_access_token(token)
    if user_id is None:
        return None
    return db.get(User, user_id)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    user = user_from_token(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


# Runtime services live on app.state; see chatapp.main.lifespan

def get_fanout(request: Request) -> FanOut:
    return request.app.state.fanout


def get_ws_presence(websocket: WebSocket) -> PresenceRegistry:
    return websocket.app.state.presence


def get_ws_fanout(websocket: WebSocket) -> FanOut:
    return websocket.app.state.fanout


def get_notification_ledger(db: Session = Depends(get_db)) -> NotificationLedger:
    return NotificationLedger(db=db)


def get_friendship_service(
    db: Session = Depends(get_db),
    fanout: FanOut = Depends(get_fanout),
) -> FriendshipService:
    return FriendshipService(db=db, fanout=fanout)


def get_message_service(
    db: Session = Depends(get_db),
    fanout: FanOut = Depends(get_fanout),
) -> MessageService:
    return MessageService(db=db, fanout=fanout)


def get_post_service(
    db: Session = Depends(get_db),
    fanout: FanOut = Depends(get_fanout),
) -> PostService:
    return PostService(db=db, fanout=fanout)
