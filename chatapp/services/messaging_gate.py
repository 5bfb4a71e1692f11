# chatapp/services/messaging_gate.py

from sqlalchemy.orm import Session

from chatapp.models.user import User
from chatapp.services.friendship_service import are_friends

STRANGER_BLOCKED_TEXT = (
    "This user doesn't accept messages from strangers. "
    "Send a friend request to start chatting."
)


def can_send(db: Session, sender_id: int, receiver_id: int) -> bool:
    """
    Whether ``sender_id`` may message ``receiver_id`` right now.

    First match wins: self-notes, accepted friends, then the receiver's
    stranger-message preference. Always read fresh from the database since
    friendships and preferences change between calls.
    """
    if sender_id == receiver_id:
        return True
    if are_friends(db, sender_id, receiver_id):
        return True
    allow = (
        db.query(User.allow_stranger_message)
        .filter(User.id == receiver_id)
        .scalar()
    )
    return bool(allow)
