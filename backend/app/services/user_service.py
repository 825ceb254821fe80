"""Per-user delivery settings: Expo push token and Telegram link."""
import logging

from sqlalchemy.orm import Session

from app.core.errors import MSG_USER_NOT_FOUND, NotFoundError, ValidationError
from app.models.user import User
from app.services.push import is_expo_push_token
from app.services.telegram import generate_telegram_link, get_bot, unlink_telegram

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(MSG_USER_NOT_FOUND)
    return user


def save_push_token(db: Session, user_id: str, token: str) -> None:
    token = (token or "").strip()
    if not is_expo_push_token(token):
        raise ValidationError("Yaroqsiz Expo push token")
    user = get_user(db, user_id)
    user.expo_push_token = token
    db.commit()
    logger.info("Saved push token for user %s", user_id)


def remove_push_token(db: Session, user_id: str) -> None:
    user = get_user(db, user_id)
    user.expo_push_token = None
    db.commit()


def get_telegram_link(db: Session, user_id: str) -> dict:
    """Deep link to start linking, or url=None when already linked or the bot is unavailable."""
    user = get_user(db, user_id)
    bot = get_bot()
    configured = bot.is_configured()
    if user.telegram_chat_id:
        return {"url": None, "isLinked": True, "isConfigured": configured}
    url = generate_telegram_link(user.id, bot=bot)
    return {"url": url, "isLinked": False, "isConfigured": configured}


def unlink_user_telegram(db: Session, user_id: str) -> bool:
    return unlink_telegram(db, get_user(db, user_id))


def get_notification_settings(db: Session, user_id: str) -> dict:
    user = get_user(db, user_id)
    return {
        "pushEnabled": bool(user.expo_push_token),
        "telegramLinked": bool(user.telegram_chat_id),
        "telegramConfigured": get_bot().is_configured(),
    }
