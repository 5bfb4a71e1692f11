# chatapp/routers/notifications.py

import logging
from typing import List

from fastapi import APIRouter, Depends

from chatapp.common.deps import get_current_user, get_fanout, get_notification_ledger
from chatapp.common.fanout import FanOut
from chatapp.core.config import settings
from chatapp.models.notification import NotificationRead
from chatapp.models.user import User
from chatapp.services.notification_service import NotificationLedger

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[NotificationRead])
def get_notifications(
    current_user: User = Depends(get_current_user),
    ledger: NotificationLedger = Depends(get_notification_ledger),
):
    return ledger.list_for_user(current_user.id, limit=settings.NOTIFICATION_LIST_LIMIT)


@router.get("/unread-count")
def get_unread_count(
    current_user: User = Depends(get_current_user),
    ledger: NotificationLedger = Depends(get_notification_ledger),
):
    return {"count": ledger.unread_count(current_user.id)}


@router.patch("/mark-all-read")
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    ledger: NotificationLedger = Depends(get_notification_ledger),
    fanout: FanOut = Depends(get_fanout),
):
    updated = ledger.mark_all_read(current_user.id)
    try:
        await fanout.notifications_read(current_user.id)
    except Exception:
        logger.exception("Live push of read state for user %s failed", current_user.id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_as_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    ledger: NotificationLedger = Depends(get_notification_ledger),
):
    return ledger.mark_read(notification_id, current_user.id)


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    ledger: NotificationLedger = Depends(get_notification_ledger),
):
    ledger.delete(notification_id, current_user.id)
    return {"message": "Notification deleted successfully"}
