"""
Notification inbox for the authenticated shopkeeper.

Listing and counting run lazy due-debt detection first, so the inbox is current between
daily sweeps. Mutations are ownership-checked: another user's id is 404.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id
from app.config import settings
from app.core.constants import NOTIFICATIONS_MAX_LIMIT
from app.core.errors import MSG_TRIGGER_FORBIDDEN, ForbiddenError
from app.db.session import get_db
from app.services import notification_ledger
from app.services.notification_sweep import process_all_users_notifications

router = APIRouter()
logger = logging.getLogger(__name__)


# --- List ---


@router.get("")
def list_notifications(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    limit: int = Query(settings.notifications_default_limit, ge=1, le=NOTIFICATIONS_MAX_LIMIT),
) -> dict[str, Any]:
    """Notifications for the user, newest first."""
    return {"success": True, "data": notification_ledger.list_notifications(db, user_id, limit=limit)}


@router.get("/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    return {"success": True, "data": {"count": notification_ledger.get_unread_count(db, user_id)}}


# --- Mark read ---


@router.patch("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    marked = notification_ledger.mark_all_as_read(db, user_id)
    return {"success": True, "message": "Barcha bildirishnomalar o'qildi", "data": {"markedCount": marked}}


@router.patch("/{notification_id}/read")
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    notification_ledger.mark_as_read(db, user_id, notification_id)
    return {"success": True, "message": "Bildirishnoma o'qildi"}


# --- Delete ---


@router.delete("")
def clear_all(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    deleted = notification_ledger.clear_all(db, user_id)
    return {"success": True, "message": "Barcha bildirishnomalar o'chirildi", "data": {"deletedCount": deleted}}


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    notification_ledger.delete_notification(db, user_id, notification_id)
    return {"success": True, "message": "Bildirishnoma o'chirildi"}


# --- Manual sweep ---


@router.post("/trigger")
def trigger_sweep(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Run the global due-debt sweep now (development only). Safe to repeat."""
    if settings.is_production:
        raise ForbiddenError(MSG_TRIGGER_FORBIDDEN)
    logger.info("Manual due sweep requested by user %s", user_id)
    result = process_all_users_notifications(db)
    return {
        "success": True,
        "message": "Bildirishnomalar tekshirildi va yuborildi",
        "data": {
            "dueFound": result.due_found,
            "notificationsCreated": result.notifications_created,
            "chatSent": result.chat_sent,
        },
    }
