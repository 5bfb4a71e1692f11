"""Tests for the friendship state machine."""

import pytest

from chatapp.core.exceptions import Conflict, InvalidRequest, NotFound
from chatapp.models.friendship import Friendship, FriendshipStatus
from chatapp.models.notification import Notification, NotificationType
from chatapp.services.friendship_service import FriendshipService, are_friends


@pytest.fixture
def service(db, fanout):
    return FriendshipService(db=db, fanout=fanout)


def _count(db, model):
    return db.query(model).count()


@pytest.mark.asyncio
async def test_request_creates_pending_record_and_notification(service, db, alice, bob):
    friendship = await service.send_request(alice, bob.id)

    assert friendship.status == FriendshipStatus.PENDING
    assert friendship.requester_id == alice.id
    assert friendship.recipient_id == bob.id
    [notification] = db.query(Notification).all()
    assert notification.recipient_id == bob.id
    assert notification.sender_id == alice.id
    assert notification.type == NotificationType.FRIEND_REQUEST
    assert notification.friendship_id == friendship.id
    assert notification.message == "Alice sent you a friend request"


@pytest.mark.asyncio
async def test_request_to_self_is_invalid(service, db, alice):
    with pytest.raises(InvalidRequest):
        await service.send_request(alice, alice.id)
    assert _count(db, Friendship) == 0


@pytest.mark.asyncio
async def test_request_to_unknown_user_is_not_found(service, alice):
    with pytest.raises(NotFound):
        await service.send_request(alice, 999)


@pytest.mark.asyncio
@pytest.mark.parametrize("accept_first", [False, True])
async def test_duplicate_request_conflicts_in_either_direction(service, db, alice, bob, accept_first):
    await service.send_request(alice, bob.id)
    if accept_first:
        await service.accept(bob, alice.id)

    with pytest.raises(Conflict):
        await service.send_request(alice, bob.id)
    with pytest.raises(Conflict):
        await service.send_request(bob, alice.id)

    assert _count(db, Friendship) == 1


@pytest.mark.asyncio
async def test_declined_request_is_revived_in_place(service, db, alice, bob):
    original = await service.send_request(alice, bob.id)
    await service.decline(bob, alice.id)

    revived = await service.send_request(alice, bob.id)

    assert revived.id == original.id
    assert revived.status == FriendshipStatus.PENDING
    assert _count(db, Friendship) == 1


@pytest.mark.asyncio
async def test_declined_request_revived_by_other_side_swaps_roles(service, db, alice, bob):
    original = await service.send_request(alice, bob.id)
    await service.decline(bob, alice.id)

    revived = await service.send_request(bob, alice.id)

    assert revived.id == original.id
    assert revived.requester_id == bob.id
    assert revived.recipient_id == alice.id
    # Now alice is the one who can accept
    accepted = await service.accept(alice, bob.id)
    assert accepted.status == FriendshipStatus.ACCEPTED


@pytest.mark.asyncio
async def test_requester_cannot_accept_own_request(service, alice, bob):
    await service.send_request(alice, bob.id)

    with pytest.raises(NotFound):
        await service.accept(alice, bob.id)
    with pytest.raises(NotFound):
        await service.decline(alice, bob.id)


@pytest.mark.asyncio
async def test_accept_and_decline_notify_requester(service, db, alice, bob, carol):
    await service.send_request(alice, bob.id)
    await service.send_request(carol, bob.id)

    await service.accept(bob, alice.id)
    await service.decline(bob, carol.id)

    to_alice = db.query(Notification).filter(Notification.recipient_id == alice.id).one()
    to_carol = db.query(Notification).filter(Notification.recipient_id == carol.id).one()
    assert to_alice.type == NotificationType.FRIEND_ACCEPTED
    assert to_alice.message == "Bob accepted your friend request"
    assert to_carol.type == NotificationType.FRIEND_DECLINED


@pytest.mark.asyncio
async def test_only_requester_can_cancel(service, db, alice, bob):
    await service.send_request(alice, bob.id)

    with pytest.raises(NotFound):
        await service.cancel(bob, alice.id)

    snapshot = await service.cancel(alice, bob.id)
    assert snapshot.status == FriendshipStatus.PENDING
    assert _count(db, Friendship) == 0
    # Cancel does not notify
    assert _count(db, Notification) == 1


@pytest.mark.asyncio
async def test_unfriend_by_either_party(service, db, alice, bob):
    await service.send_request(alice, bob.id)
    await service.accept(bob, alice.id)

    await service.unfriend(bob, alice.id)

    assert _count(db, Friendship) == 0
    assert not are_friends(db, alice.id, bob.id)
    with pytest.raises(NotFound):
        await service.unfriend(alice, bob.id)


@pytest.mark.asyncio
async def test_unfriend_requires_accepted_friendship(service, alice, bob):
    await service.send_request(alice, bob.id)

    with pytest.raises(NotFound):
        await service.unfriend(alice, bob.id)


@pytest.mark.asyncio
async def test_request_accept_unfriend_request_again(service, db, alice, bob):
    await service.send_request(alice, bob.id)
    await service.accept(bob, alice.id)
    await service.unfriend(alice, bob.id)
    await service.send_request(alice, bob.id)

    [friendship] = db.query(Friendship).all()
    assert friendship.status == FriendshipStatus.PENDING
    assert friendship.requester_id == alice.id
    kinds = [n.type for n in db.query(Notification).order_by(Notification.id)]
    assert kinds == [
        NotificationType.FRIEND_REQUEST,
        NotificationType.FRIEND_ACCEPTED,
        NotificationType.FRIEND_REQUEST,
    ]


@pytest.mark.asyncio
async def test_conditional_update_lets_first_of_accept_and_cancel_win(session_factory, fanout, alice, bob):
    setup = session_factory()
    await FriendshipService(db=setup, fanout=fanout).send_request(setup.merge(alice), bob.id)
    setup.close()

    first, second = session_factory(), session_factory()
    accepting = FriendshipService(db=first, fanout=fanout)
    cancelling = FriendshipService(db=second, fanout=fanout)
    # Both sides have loaded the pending row before either acts
    assert accepting.received_requests(first.merge(bob))
    assert cancelling.sent_requests(second.merge(alice))

    accepted = await accepting.accept(first.merge(bob), alice.id)
    with pytest.raises(NotFound):
        await cancelling.cancel(second.merge(alice), bob.id)

    assert accepted.status == FriendshipStatus.ACCEPTED
    assert are_friends(second, alice.id, bob.id)
    first.close()
    second.close()


@pytest.mark.asyncio
async def test_stale_session_cannot_accept_cancelled_request(session_factory, fanout, alice, bob):
    first, second = session_factory(), session_factory()
    requester_side = FriendshipService(db=first, fanout=fanout)
    recipient_side = FriendshipService(db=second, fanout=fanout)
    await requester_side.send_request(first.merge(alice), bob.id)

    # The recipient's session has already seen the pending row
    assert recipient_side.received_requests(second.merge(bob))

    await requester_side.cancel(first.merge(alice), bob.id)
    with pytest.raises(NotFound):
        await recipient_side.accept(second.merge(bob), alice.id)
    first.close()
    second.close()


@pytest.mark.asyncio
async def test_transitions_push_to_both_parties(service, registry, connection, alice, bob):
    alice_conn, bob_conn = connection(), connection()
    await registry.register(alice.id, alice_conn)
    await registry.register(bob.id, bob_conn)

    await service.send_request(alice, bob.id)
    await service.accept(bob, alice.id)

    alice_updates = [f["data"]["type"] for f in alice_conn.events("friendshipUpdate")]
    bob_updates = [f["data"]["type"] for f in bob_conn.events("friendshipUpdate")]
    assert alice_updates == ["request_sent", "request_accepted"]
    assert bob_updates == ["request_sent", "request_accepted"]
    assert [f["data"]["type"] for f in bob_conn.events("notification")] == ["friend_request"]
    assert [f["data"]["type"] for f in alice_conn.events("notification")] == ["friend_accepted"]


@pytest.mark.asyncio
async def test_cancel_and_unfriend_push_without_notification(service, registry, connection, alice, bob):
    await service.send_request(alice, bob.id)
    bob_conn = connection()
    await registry.register(bob.id, bob_conn)

    await service.cancel(alice, bob.id)

    [update] = bob_conn.events("friendshipUpdate")
    assert update["data"]["type"] == "request_cancelled"
    assert update["data"]["friendship"]["recipientId"] == bob.id
    assert bob_conn.events("notification") == []


@pytest.mark.asyncio
async def test_push_failure_does_not_fail_transition(service, db, registry, connection, alice, bob):
    registry._connections[bob.id] = connection(fail=True)

    friendship = await service.send_request(alice, bob.id)

    assert friendship.status == FriendshipStatus.PENDING
    assert registry.resolve(bob.id) is None
    assert _count(db, Notification) == 1


@pytest.mark.asyncio
async def test_friend_lists(service, alice, bob, carol):
    await service.send_request(alice, bob.id)
    await service.accept(bob, alice.id)
    await service.send_request(carol, alice.id)

    assert [u.id for u in service.list_friends(alice)] == [bob.id]
    assert [f.requester_id for f in service.received_requests(alice)] == [carol.id]
    assert [f.recipient_id for f in service.sent_requests(carol)] == [alice.id]
    assert service.friend_count(bob.id) == 1
