# chatapp/services/message_service.py

import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from chatapp.common.fanout import FanOut
from chatapp.core.exceptions import InvalidRequest, NotFound
from chatapp.models.message import LastMessage, Message, MessageCreate, MessageRead, SidebarUser
from chatapp.models.user import User, utcnow
from chatapp.services.messaging_gate import STRANGER_BLOCKED_TEXT, can_send

logger = logging.getLogger(__name__)


def _conversation_filter(user_a: int, user_b: int):
    return or_(
        and_(Message.sender_id == user_a, Message.receiver_id == user_b),
        and_(Message.sender_id == user_b, Message.receiver_id == user_a),
    )


class MessageService:

    def __init__(self, db: Session, fanout: FanOut):
        self.db = db
        self.fanout = fanout

    def conversation(self, user_id: int, other_id: int) -> List[Message]:
        return (
            self.db.query(Message)
            .filter(_conversation_filter(user_id, other_id))
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    def last_message(self, user_id: int, other_id: int) -> Optional[Message]:
        return (
            self.db.query(Message)
            .filter(_conversation_filter(user_id, other_id))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .first()
        )

    def sidebar(self, user: User) -> List[SidebarUser]:
        """Every other user, each with the latest message exchanged with ``user``."""
        others = self.db.query(User).filter(User.id != user.id).order_by(User.full_name).all()
        entries = []
        for other in others:
            entry = SidebarUser.model_validate(other)
            last = self.last_message(user.id, other.id)
            if last is not None:
                entry.last_message = LastMessage(
                    text=last.text,
                    image=last.image,
                    sticker=last.sticker,
                    created_at=last.created_at,
                    is_sent_by_logged_in_user=last.sender_id == user.id,
                )
            entries.append(entry)
        return entries

    async def send_message(
        self, sender: User, receiver_id: int, body: MessageCreate
    ) -> Tuple[MessageRead, bool]:
        """
        Gate, persist and push one message.

        Returns the message and whether it was stored. A message the gate
        rejects comes back as an unstored system notice for the sender only.
        """
        if not (body.text or body.image or body.sticker):
            raise InvalidRequest("Message must contain text, an image or a sticker.")
        if self.db.get(User, receiver_id) is None:
            raise NotFound("User not found.")

        if not can_send(self.db, sender.id, receiver_id):
            notice = MessageRead(
                id=None,
                sender_id=receiver_id,
                receiver_id=sender.id,
                text=STRANGER_BLOCKED_TEXT,
                created_at=utcnow(),
                system=True,
            )
            logger.info("Message from %s to %s blocked: stranger messages off", sender.id, receiver_id)
            await self._push(notice, [sender.id])
            return notice, False

        message = Message(
            sender_id=sender.id,
            receiver_id=receiver_id,
            text=body.text,
            image=body.image,
            sticker=body.sticker,
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)

        stored = MessageRead.model_validate(message)
        # The sender may have the conversation open on another tab
        await self._push(stored, [receiver_id, sender.id])
        return stored, True

    async def _push(self, message: MessageRead, user_ids: List[int]) -> None:
        try:
            await self.fanout.new_message(message, user_ids)
        except Exception:
            logger.exception("Live push of message %s failed", message.id)
