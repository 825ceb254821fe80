"""
Telegram account linking and bot commands. Protocol here; client below just sends requests.

Linking flow:
1. App asks for a link: a single-use code is minted (10 min) and t.me/<bot>?start=<code> returned.
2. User opens it; Telegram delivers "/start <code>" to the webhook.
3. The code is consumed and the chat id stored on the user (Linked).
4. "/unlink" from the chat or DELETE /users/telegram-link from the app clears it (Unlinked).

While linked, "/list" answers with the same overdue summary the daily sweep sends.
"""
import logging
import re
from datetime import date

from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User
from app.services.due_debts import get_overdue_items, local_today
from app.services.link_codes import PendingLinkStore, pending_links
from app.services.summary_message import build_overdue_message
from app.services.telegram.client import TelegramBot, get_bot
from app.services.telegram.types import TelegramUpdate

logger = logging.getLogger(__name__)

_LINK_CODE_RE = re.compile(r"^[0-9a-f]{32}$")

MSG_WELCOME = (
    "Assalomu alaykum! 👋\n\n"
    "Men <b>Qarz Daftar</b> ilovasining botiman.\n"
    "Ilovadan bog'lanish havolasini oling va shu yerga yuboring."
)
MSG_LINK_INVALID = (
    "Bu havola eskirgan yoki yaroqsiz. ❌\n"
    "Iltimos, ilovadan yangi havola oling."
)
MSG_LINKED = (
    "Telegram hisobingiz Qarz Daftar ilovasiga muvaffaqiyatli bog'landi! ✅\n\n"
    "Endi to'lov muddati kelganda sizga xabar yuboriladi.\n"
    "Bog'lanishni bekor qilish uchun /unlink buyrug'ini yuboring."
)
MSG_NOT_LINKED = "Sizning Telegram hisobingiz hech qanday akkauntga bog'lanmagan."
MSG_UNLINKED_BY_CHAT = (
    "Telegram hisobingiz Qarz Daftar ilovasidan muvaffaqiyatli uzildi. ✅\n"
    "Qayta bog'lanish uchun ilovadagi havoladan foydalaning."
)
MSG_UNLINKED_BY_APP = (
    "Telegram hisobingiz Qarz Daftar ilovasidan uzildi. ❌\n"
    "Qayta bog'lanish uchun ilovadagi havoladan foydalaning."
)

__all__ = [
    "TelegramBot",
    "generate_telegram_link",
    "get_bot",
    "handle_update",
    "overdue_summary_for_user",
    "unlink_telegram",
]


def generate_telegram_link(
    user_id: str,
    *,
    bot: TelegramBot | None = None,
    store: PendingLinkStore | None = None,
) -> str | None:
    """Deep link https://t.me/<bot>?start=<code>, or None if the bot is unconfigured or getMe fails."""
    bot = bot or get_bot()
    store = pending_links if store is None else store
    if not bot.is_configured():
        return None
    username = bot.get_username()
    if not username:
        return None
    code = store.issue(user_id)
    return f"https://t.me/{username}?start={code}"


def overdue_summary_for_user(db: Session, user_id: str, today: date | None = None) -> str:
    """Full current overdue summary (not just newly detected debts)."""
    today = today or local_today()
    items = get_overdue_items(db, user_id, today=today)
    return build_overdue_message(items, today, max_items=settings.summary_max_items)


def _user_by_chat(db: Session, chat_id: str) -> User | None:
    return db.query(User).filter(User.telegram_chat_id == chat_id).first()


def _handle_start(db: Session, bot: TelegramBot, store: PendingLinkStore, chat_id: str, code: str) -> None:
    # Consumed up front: a failed link burns the code and the user asks the app for a new one
    user_id = store.consume(code) if _LINK_CODE_RE.match(code) else None
    user = db.get(User, user_id) if user_id else None
    if user is None:
        bot.send_message(chat_id, MSG_LINK_INVALID)
        return

    # A chat can back only one account: move the link if it pointed elsewhere
    previous = _user_by_chat(db, chat_id)
    if previous is not None and previous.id != user.id:
        previous.telegram_chat_id = None
        db.flush()
    user.telegram_chat_id = chat_id
    db.commit()
    logger.info("Telegram chat %s linked to user %s", chat_id, user.id)
    bot.send_message(chat_id, MSG_LINKED)


def _handle_unlink(db: Session, bot: TelegramBot, chat_id: str) -> None:
    user = _user_by_chat(db, chat_id)
    if user is None:
        bot.send_message(chat_id, MSG_NOT_LINKED)
        return
    user.telegram_chat_id = None
    db.commit()
    logger.info("Telegram chat %s unlinked from user %s via /unlink", chat_id, user.id)
    bot.send_message(chat_id, MSG_UNLINKED_BY_CHAT)


def _handle_list(db: Session, bot: TelegramBot, chat_id: str) -> None:
    user = _user_by_chat(db, chat_id)
    if user is None:
        bot.send_message(chat_id, MSG_NOT_LINKED)
        return
    bot.send_message(chat_id, overdue_summary_for_user(db, user.id))


def handle_update(
    db: Session,
    update: TelegramUpdate,
    *,
    bot: TelegramBot | None = None,
    store: PendingLinkStore | None = None,
) -> str | None:
    """
    Dispatch one webhook update. Returns the command handled ("start", "link", "unlink", "list")
    or None when the update carried nothing to act on.
    """
    bot = bot or get_bot()
    store = pending_links if store is None else store
    message = update.get("message") if isinstance(update, dict) else None
    if not isinstance(message, dict):
        return None
    text = message.get("text")
    chat = message.get("chat")
    if not isinstance(text, str) or not isinstance(chat, dict) or chat.get("id") is None:
        return None

    chat_id = str(chat["id"])
    parts = text.strip().split(maxsplit=1)
    if not parts:
        return None
    command = parts[0].split("@", 1)[0]  # "/list@QarzDaftarBot" in groups
    arg = parts[1].strip() if len(parts) > 1 else ""

    if command == "/start" and arg:
        _handle_start(db, bot, store, chat_id, arg)
        return "link"
    if command == "/start":
        bot.send_message(chat_id, MSG_WELCOME)
        return "start"
    if command == "/unlink":
        _handle_unlink(db, bot, chat_id)
        return "unlink"
    if command == "/list":
        _handle_list(db, bot, chat_id)
        return "list"
    return None


def unlink_telegram(db: Session, user: User, *, bot: TelegramBot | None = None) -> bool:
    """App-side unlink. Clears the chat id, then best-effort tells the chat. Returns whether it was linked."""
    chat_id = user.telegram_chat_id
    if not chat_id:
        return False
    user.telegram_chat_id = None
    db.commit()
    logger.info("Telegram chat %s unlinked from user %s via app", chat_id, user.id)
    (bot or get_bot()).send_message(chat_id, MSG_UNLINKED_BY_APP)
    return True
