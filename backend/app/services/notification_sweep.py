"""
Global due-debt sweep: detect (one query for all users) -> record notifications (per user) ->
deliver (push for each newly recorded debt, Telegram summary for each linked user).

Best-effort batch. A user whose ledger write fails is logged and skipped; delivery failures
are logged per recipient. Running the sweep again is safe: the ledger's unique constraint
makes recording idempotent, so nothing is pushed twice for the same debt.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Sequence

from sqlalchemy.orm import Session

from app.config import settings
from app.core.constants import PAYMENT_DUE_TITLE
from app.models.enums import NotificationType
from app.services.due_debts import DueTransaction, find_due_transactions, local_today
from app.services.notification_ledger import payment_due_message, record_due_notifications
from app.services.push import PushBatchResult, PushMessage, send_push_batch
from app.services.telegram import overdue_summary_for_user
from app.services.telegram.client import TelegramBot, get_bot

logger = logging.getLogger(__name__)

PushSender = Callable[[Sequence[PushMessage]], PushBatchResult]


@dataclass
class SweepResult:
    due_found: int = 0
    notifications_created: int = 0
    users_processed: int = 0
    users_failed: list[str] = field(default_factory=list)
    push_messages: int = 0
    push: PushBatchResult | None = None
    chat_sent: int = 0
    chat_failed: int = 0


def _group_by_user(due: list[DueTransaction]) -> dict[str, list[DueTransaction]]:
    grouped: dict[str, list[DueTransaction]] = {}
    for item in due:
        grouped.setdefault(item.user_id, []).append(item)
    return grouped


def _push_message(item: DueTransaction) -> PushMessage:
    return PushMessage(
        token=item.push_token,
        title=PAYMENT_DUE_TITLE,
        body=payment_due_message(item.customer_name, item.amount),
        data={
            "type": NotificationType.PAYMENT_DUE.value,
            "customerId": item.customer_id,
            "transactionId": item.transaction_id,
        },
    )


def _record_for_user(db: Session, user_id: str, items: list[DueTransaction]) -> list[DueTransaction] | None:
    """Record one user's notifications in their own transaction. None if it failed."""
    try:
        recorded = record_due_notifications(db, items)
        db.commit()
        return recorded
    except Exception as e:
        db.rollback()
        logger.exception("Due sweep: recording notifications for user %s failed: %s", user_id, e)
        return None


def _compose_chat_summaries(
    db: Session, chats: dict[str, str], today: date, result: SweepResult
) -> list[tuple[str, str, str]]:
    """(user_id, chat_id, text) for each linked user; DB reads happen here, before any network I/O."""
    out: list[tuple[str, str, str]] = []
    for user_id, chat_id in chats.items():
        try:
            out.append((user_id, chat_id, overdue_summary_for_user(db, user_id, today)))
        except Exception as e:
            db.rollback()
            result.chat_failed += 1
            logger.exception("Due sweep: building summary for user %s failed: %s", user_id, e)
    return out


def process_all_users_notifications(
    db: Session,
    *,
    today: date | None = None,
    push_sender: PushSender = send_push_batch,
    bot: TelegramBot | None = None,
    max_workers: int | None = None,
) -> SweepResult:
    result = SweepResult()
    today = today or local_today()
    due = find_due_transactions(db, today=today)
    result.due_found = len(due)
    if not due:
        logger.info("Due sweep: no newly due debts")
        return result
    logger.info("Due sweep: %s newly due debts", len(due))

    push_messages: list[PushMessage] = []
    chats: dict[str, str] = {}
    for user_id, items in _group_by_user(due).items():
        recorded = _record_for_user(db, user_id, items)
        if recorded is None:
            result.users_failed.append(user_id)
            continue
        result.users_processed += 1
        result.notifications_created += len(recorded)
        push_messages.extend(_push_message(item) for item in recorded if item.push_token)
        chat_id = items[0].telegram_chat_id
        if chat_id:
            chats[user_id] = chat_id

    bot = bot or get_bot()
    summaries = _compose_chat_summaries(db, chats, today, result) if bot.is_configured() else []
    result.push_messages = len(push_messages)
    counters_lock = threading.Lock()

    def deliver_push() -> None:
        result.push = push_sender(push_messages)

    def deliver_chat(user_id: str, chat_id: str, text: str) -> None:
        sent = bot.send_message(chat_id, text)
        with counters_lock:
            if sent:
                result.chat_sent += 1
            else:
                result.chat_failed += 1

    with ThreadPoolExecutor(
        max_workers=max_workers or settings.delivery_max_workers,
        thread_name_prefix="due_sweep_delivery",
    ) as executor:
        futures = {}
        if push_messages:
            futures[executor.submit(deliver_push)] = "push"
        for user_id, chat_id, text in summaries:
            futures[executor.submit(deliver_chat, user_id, chat_id, text)] = f"chat:{user_id}"
        done, _ = wait(futures)
        for future in done:
            exc = future.exception()
            if exc is not None:
                if futures[future].startswith("chat:"):
                    result.chat_failed += 1
                logger.error("Due sweep: delivery %s failed: %s", futures[future], exc, exc_info=exc)

    logger.info(
        "Due sweep: %s notifications created for %s users (%s failed), %s push messages, %s/%s chat summaries sent",
        result.notifications_created,
        result.users_processed,
        len(result.users_failed),
        result.push_messages,
        result.chat_sent,
        len(summaries),
    )
    return result
