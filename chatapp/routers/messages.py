# chatapp/routers/messages.py

from typing import List

from fastapi import APIRouter, Depends, Response, status

from chatapp.common.deps import get_current_user, get_message_service
from chatapp.models.message import MessageCreate, MessageRead, SidebarUser
from chatapp.models.user import User
from chatapp.services.message_service import MessageService

router = APIRouter()


@router.get("/users", response_model=List[SidebarUser])
def get_users_for_sidebar(
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    return service.sidebar(current_user)


@router.post("/send/{receiver_id}", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    receiver_id: int,
    body: MessageCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    message, stored = await service.send_message(current_user, receiver_id, body)
    if not stored:
        response.status_code = status.HTTP_200_OK
    return message


@router.get("/{user_id}", response_model=List[MessageRead])
def get_messages(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    return service.conversation(current_user.id, user_id)
