# chatapp/services/friendship_service.py
"""
Friendship lifecycle between two users.

    none --request--> pending --accept--> accepted --unfriend--> none
                        |  `--decline--> declined --request--> pending
                        `--cancel--> none

Every transition is a conditional UPDATE/DELETE matched on the expected
status, so of two racing calls on the same row exactly one wins and the
other sees no matching row. The mutation and its notification commit
together; the live push happens afterwards and never fails the call.
"""

import logging
from typing import List, Optional

from sqlalchemy import and_, delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from chatapp.common.fanout import FanOut, FriendshipTransition
from chatapp.core.exceptions import Conflict, InvalidRequest, NotFound
from chatapp.models.friendship import (
    Friendship,
    FriendshipRead,
    FriendshipStatus,
    make_pair_key,
)
from chatapp.models.notification import Notification, NotificationRead, NotificationType
from chatapp.models.user import User, utcnow
from chatapp.services.notification_service import NotificationLedger

logger = logging.getLogger(__name__)


def are_friends(db: Session, user_a: int, user_b: int) -> bool:
    """True when an accepted friendship exists, in either direction."""
    return (
        db.query(Friendship.id)
        .filter(
            Friendship.pair_key == make_pair_key(user_a, user_b),
            Friendship.status == FriendshipStatus.ACCEPTED,
        )
        .first()
        is not None
    )


def friend_ids(db: Session, user_id: int) -> List[int]:
    rows = (
        db.query(Friendship.requester_id, Friendship.recipient_id)
        .filter(
            or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id),
            Friendship.status == FriendshipStatus.ACCEPTED,
        )
        .all()
    )
    return [recipient if requester == user_id else requester for requester, recipient in rows]


class FriendshipService:

    def __init__(self, db: Session, fanout: FanOut, ledger: Optional[NotificationLedger] = None):
        self.db = db
        self.fanout = fanout
        self.ledger = ledger or NotificationLedger(db)

    # --- queries ---

    def _query(self):
        return self.db.query(Friendship).options(
            joinedload(Friendship.requester), joinedload(Friendship.recipient)
        )

    def _load(self, friendship_id: int) -> Friendship:
        return self._query().filter(Friendship.id == friendship_id).one()

    def get_between(self, user_a: int, user_b: int) -> Optional[Friendship]:
        return self._query().filter(Friendship.pair_key == make_pair_key(user_a, user_b)).first()

    def list_friends(self, user: User) -> List[User]:
        ids = friend_ids(self.db, user.id)
        if not ids:
            return []
        return self.db.query(User).filter(User.id.in_(ids)).order_by(User.full_name).all()

    def sent_requests(self, user: User) -> List[Friendship]:
        return (
            self._query()
            .filter(
                Friendship.requester_id == user.id,
                Friendship.status == FriendshipStatus.PENDING,
            )
            .order_by(Friendship.updated_at.desc())
            .all()
        )

    def received_requests(self, user: User) -> List[Friendship]:
        return (
            self._query()
            .filter(
                Friendship.recipient_id == user.id,
                Friendship.status == FriendshipStatus.PENDING,
            )
            .order_by(Friendship.updated_at.desc())
            .all()
        )

    def friend_count(self, user_id: int) -> int:
        return len(friend_ids(self.db, user_id))

    # --- transitions ---

    async def send_request(self, requester: User, recipient_id: int) -> Friendship:
        if recipient_id == requester.id:
            raise InvalidRequest("Cannot send friend request to yourself.")
        if self.db.get(User, recipient_id) is None:
            raise NotFound("User not found.")

        existing = self.get_between(requester.id, recipient_id)
        if existing is not None and existing.status != FriendshipStatus.DECLINED:
            raise Conflict("Friend request already exists or you are already friends.")

        if existing is not None:
            # A declined request is revived in place; whoever asks now is the requester
            result = self.db.execute(
                update(Friendship)
                .where(
                    Friendship.id == existing.id,
                    Friendship.status == FriendshipStatus.DECLINED,
                )
                .values(
                    status=FriendshipStatus.PENDING,
                    requester_id=requester.id,
                    recipient_id=recipient_id,
                    updated_at=utcnow(),
                )
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise Conflict("Friend request already exists or you are already friends.")
            friendship_id = existing.id
        else:
            friendship = Friendship(
                requester_id=requester.id,
                recipient_id=recipient_id,
                status=FriendshipStatus.PENDING,
                pair_key=make_pair_key(requester.id, recipient_id),
            )
            self.db.add(friendship)
            try:
                self.db.flush()
            except IntegrityError:
                # Lost an insert race for the same pair
                self.db.rollback()
                raise Conflict("Friend request already exists or you are already friends.")
            friendship_id = friendship.id

        notification = self.ledger.create(
            recipient_id,
            requester.id,
            NotificationType.FRIEND_REQUEST,
            friendship_id=friendship_id,
            commit=False,
        )
        self.db.commit()

        friendship = self._load(friendship_id)
        logger.info("Friend request %s: %s -> %s", friendship.id, requester.id, recipient_id)
        await self._announce(FriendshipTransition.REQUEST_SENT, friendship, notification)
        return friendship

    async def accept(self, recipient: User, requester_id: int) -> Friendship:
        friendship = self._answer(recipient, requester_id, FriendshipStatus.ACCEPTED)
        notification = self.ledger.create(
            requester_id,
            recipient.id,
            NotificationType.FRIEND_ACCEPTED,
            friendship_id=friendship.id,
            commit=False,
        )
        self.db.commit()

        friendship = self._load(friendship.id)
        await self._announce(FriendshipTransition.REQUEST_ACCEPTED, friendship, notification)
        return friendship

    async def decline(self, recipient: User, requester_id: int) -> Friendship:
        friendship = self._answer(recipient, requester_id, FriendshipStatus.DECLINED)
        notification = self.ledger.create(
            requester_id,
            recipient.id,
            NotificationType.FRIEND_DECLINED,
            friendship_id=friendship.id,
            commit=False,
        )
        self.db.commit()

        friendship = self._load(friendship.id)
        await self._announce(FriendshipTransition.REQUEST_DECLINED, friendship, notification)
        return friendship

    def _answer(self, recipient: User, requester_id: int, status: FriendshipStatus) -> Friendship:
        """Move a pending request addressed to ``recipient`` into ``status`` (uncommitted)."""
        result = self.db.execute(
            update(Friendship)
            .where(
                Friendship.requester_id == requester_id,
                Friendship.recipient_id == recipient.id,
                Friendship.status == FriendshipStatus.PENDING,
            )
            .values(status=status, updated_at=utcnow())
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFound("Friend request not found.")
        return (
            self.db.query(Friendship)
            .filter(Friendship.pair_key == make_pair_key(requester_id, recipient.id))
            .one()
        )

    async def cancel(self, requester: User, recipient_id: int) -> FriendshipRead:
        criteria = and_(
            Friendship.requester_id == requester.id,
            Friendship.recipient_id == recipient_id,
            Friendship.status == FriendshipStatus.PENDING,
        )
        snapshot = self._remove(criteria, "Friend request not found.")
        await self._announce(FriendshipTransition.REQUEST_CANCELLED, snapshot)
        return snapshot

    async def unfriend(self, user: User, friend_id: int) -> FriendshipRead:
        criteria = and_(
            Friendship.pair_key == make_pair_key(user.id, friend_id),
            Friendship.status == FriendshipStatus.ACCEPTED,
        )
        snapshot = self._remove(criteria, "Friendship not found.")
        logger.info("Users %s and %s are no longer friends", user.id, friend_id)
        await self._announce(FriendshipTransition.UNFRIENDED, snapshot)
        return snapshot

    def _remove(self, criteria, not_found_message: str) -> FriendshipRead:
        friendship = self._query().filter(criteria).first()
        if friendship is None:
            raise NotFound(not_found_message)
        snapshot = FriendshipRead.model_validate(friendship)

        result = self.db.execute(
            delete(Friendship).where(Friendship.id == friendship.id, criteria)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFound(not_found_message)
        self.db.commit()
        return snapshot

    # --- live push ---

    async def _announce(
        self,
        kind: FriendshipTransition,
        friendship,
        notification: Optional[Notification] = None,
    ) -> None:
        try:
            snapshot = (
                friendship
                if isinstance(friendship, FriendshipRead)
                else FriendshipRead.model_validate(friendship)
            )
            await self.fanout.friendship_update(kind, snapshot)
            if notification is not None:
                await self.fanout.notification(NotificationRead.model_validate(notification))
        except Exception:
            logger.exception("Live push for friendship %s failed", kind.value)
