"""Delivery settings for the authenticated user: Expo push token and Telegram link."""
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id
from app.db.session import get_db
from app.services import user_service

router = APIRouter()


class PushTokenBody(BaseModel):
    token: str = Field(..., min_length=1, max_length=256, description="Expo push token, e.g. ExponentPushToken[...]")


# --- Push token ---


@router.post("/push-token")
def save_push_token(
    body: PushTokenBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Register or replace the user's Expo push token."""
    user_service.save_push_token(db, user_id, body.token)
    return {"success": True, "message": "Push token saqlandi"}


@router.delete("/push-token")
def remove_push_token(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Forget the push token (e.g. on logout)."""
    user_service.remove_push_token(db, user_id)
    return {"success": True, "message": "Push token o'chirildi"}


# --- Telegram ---


@router.get("/telegram-link")
def get_telegram_link(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Deep link that links this account to a Telegram chat (valid 10 minutes, single use)."""
    return {"success": True, "data": user_service.get_telegram_link(db, user_id)}


@router.delete("/telegram-link")
def unlink_telegram(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    user_service.unlink_user_telegram(db, user_id)
    return {"success": True, "message": "Telegram uzildi"}


@router.get("/notification-settings")
def notification_settings(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    return {"success": True, "data": user_service.get_notification_settings(db, user_id)}
