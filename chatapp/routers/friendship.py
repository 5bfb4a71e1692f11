# chatapp/routers/friendship.py

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from chatapp.common.deps import get_current_user, get_friendship_service
from chatapp.db.session import get_db
from chatapp.models.friendship import (
    FriendRequestAnswer,
    FriendRequestCreate,
    FriendshipRead,
    UnfriendRequest,
)
from chatapp.models.user import User, UserPublic
from chatapp.services.friendship_service import FriendshipService
from chatapp.services.messaging_gate import can_send

router = APIRouter()


@router.post("/request", response_model=FriendshipRead, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    body: FriendRequestCreate,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.send_request(current_user, body.recipient_id)


@router.post("/accept", response_model=FriendshipRead)
async def accept_friend_request(
    body: FriendRequestAnswer,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.accept(current_user, body.requester_id)


@router.post("/decline", response_model=FriendshipRead)
async def decline_friend_request(
    body: FriendRequestAnswer,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.decline(current_user, body.requester_id)


@router.post("/cancel")
async def cancel_friend_request(
    body: FriendRequestCreate,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    await service.cancel(current_user, body.recipient_id)
    return {"message": "Friend request cancelled successfully."}


@router.post("/unfriend")
async def unfriend(
    body: UnfriendRequest,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    await service.unfriend(current_user, body.friend_id)
    return {"message": "Unfriended successfully."}


@router.get("/list", response_model=List[UserPublic])
def get_friends(
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return service.list_friends(current_user)


@router.get("/sent", response_model=List[FriendshipRead])
def get_sent_requests(
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return service.sent_requests(current_user)


@router.get("/received", response_model=List[FriendshipRead])
def get_received_requests(
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return service.received_requests(current_user)


@router.get("/count/{user_id}")
def get_friend_count(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return {"count": service.friend_count(user_id)}


@router.get("/can-message/{user_id}")
def can_message(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"canMessage": can_send(db, current_user.id, user_id)}
