"""
Notification ledger: one PAYMENT_DUE notification per due transaction, plus inbox operations.

Exactly-once rests on UNIQUE (transaction_id, type) in the database. Inserts use
INSERT ... ON CONFLICT DO NOTHING, so the lazy inbox path and the daily sweep can race on
the same transaction and the loser is skipped silently.
"""
import logging
from typing import Any, Iterable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, joinedload

from app.core.constants import NOTIFICATIONS_MAX_LIMIT, PAYMENT_DUE_MESSAGE, PAYMENT_DUE_TITLE
from app.core.errors import MSG_NOTIFICATION_NOT_FOUND, NotFoundError
from app.models.enums import NotificationType
from app.models.notification import Notification
from app.services.due_debts import DueTransaction, find_due_transactions
from app.services.summary_message import format_amount

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def payment_due_message(customer_name: str, amount: int) -> str:
    return PAYMENT_DUE_MESSAGE.format(name=customer_name, amount=format_amount(amount))


def _insert_skip_duplicate(db: Session, values: dict[str, Any]) -> bool:
    """Atomic conditional insert. Returns True if a row was written, False if it already existed."""
    dialect = db.get_bind().dialect.name
    insert = _DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Unsupported database dialect for notifications: {dialect}")
    stmt = (
        insert(Notification)
        .values(**values)
        .on_conflict_do_nothing(index_elements=["transaction_id", "type"])
    )
    return db.execute(stmt).rowcount == 1


def record_due_notifications(db: Session, due: Iterable[DueTransaction]) -> list[DueTransaction]:
    """
    Insert one PAYMENT_DUE notification per candidate, skipping any transaction that already
    has one. Returns the candidates that were actually recorded. Does not commit.
    """
    recorded: list[DueTransaction] = []
    for item in due:
        written = _insert_skip_duplicate(
            db,
            {
                "user_id": item.user_id,
                "customer_id": item.customer_id,
                "transaction_id": item.transaction_id,
                "type": NotificationType.PAYMENT_DUE,
                "title": PAYMENT_DUE_TITLE,
                "message": payment_due_message(item.customer_name, item.amount),
                "is_read": False,
            },
        )
        if written:
            recorded.append(item)
    return recorded


def generate_payment_due_notifications(db: Session, user_id: str) -> int:
    """Lazy detection for one user (run before every inbox read). Returns how many were created."""
    due = find_due_transactions(db, user_id=user_id)
    if not due:
        return 0
    recorded = record_due_notifications(db, due)
    db.commit()
    if recorded:
        logger.info("Created %s payment-due notifications for user %s", len(recorded), user_id)
    return len(recorded)


def _serialize(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type.value,
        "title": n.title,
        "message": n.message,
        "isRead": n.is_read,
        "customerId": n.customer_id,
        "customerName": n.customer.name if n.customer else None,
        "customerPhone": n.customer.phone if n.customer else None,
        "createdAt": n.created_at.isoformat() if n.created_at else None,
    }


def list_notifications(db: Session, user_id: str, limit: int = 50) -> list[dict[str, Any]]:
    """Newest first, at most `limit` rows. Runs lazy detection first so the inbox is current."""
    generate_payment_due_notifications(db, user_id)
    limit = max(1, min(limit, NOTIFICATIONS_MAX_LIMIT))
    rows = (
        db.query(Notification)
        .options(joinedload(Notification.customer))
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .all()
    )
    return [_serialize(r) for r in rows]


def get_unread_count(db: Session, user_id: str) -> int:
    generate_payment_due_notifications(db, user_id)
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def _get_owned(db: Session, user_id: str, notification_id: str) -> Notification:
    row = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not row:
        raise NotFoundError(MSG_NOTIFICATION_NOT_FOUND)
    return row


def mark_as_read(db: Session, user_id: str, notification_id: str) -> None:
    """Idempotent. Another user's notification id is NotFound, never a silent no-op."""
    row = _get_owned(db, user_id, notification_id)
    if not row.is_read:
        row.is_read = True
        db.commit()


def mark_all_as_read(db: Session, user_id: str) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return updated


def delete_notification(db: Session, user_id: str, notification_id: str) -> None:
    row = _get_owned(db, user_id, notification_id)
    db.delete(row)
    db.commit()


def clear_all(db: Session, user_id: str) -> int:
    deleted = (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
