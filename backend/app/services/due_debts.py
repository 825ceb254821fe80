"""
Due-debt detection.

A debt obligation is due once its expected_return_date is on or before today in
settings.app_timezone ("due today" included). find_due_transactions returns those that
have no PAYMENT_DUE notification yet; get_overdue_items builds the per-customer view used
by the summary message, regardless of whether notifications exist.
"""
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from sqlalchemy import exists
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.models.customer import Customer
from app.models.enums import NotificationType, TransactionType
from app.models.notification import Notification
from app.models.transaction import Transaction
from app.models.user import User
from app.services.balance import net_balance
from app.services.summary_message import OverdueItem


@dataclass(frozen=True)
class DueTransaction:
    """One due DEBT with what the ledger and the channels need, loaded in the same query."""

    transaction_id: str
    user_id: str
    customer_id: str
    customer_name: str
    amount: int
    expected_return_date: date
    push_token: str | None = None
    telegram_chat_id: str | None = None


def local_today() -> date:
    return datetime.now(ZoneInfo(settings.app_timezone)).date()


def _is_overdue(tx: Transaction, today: date) -> bool:
    return (
        tx.type == TransactionType.DEBT
        and tx.expected_return_date is not None
        and tx.expected_return_date <= today
    )


def find_due_transactions(
    db: Session,
    user_id: str | None = None,
    today: date | None = None,
) -> list[DueTransaction]:
    """
    DEBT transactions due on or before today with no PAYMENT_DUE notification.
    user_id=None scans all users in a single query (the sweep); otherwise one user (lazy path).
    """
    today = today or local_today()
    already_notified = exists().where(
        Notification.transaction_id == Transaction.id,
        Notification.type == NotificationType.PAYMENT_DUE,
    )
    q = (
        db.query(
            Transaction.id,
            Transaction.user_id,
            Transaction.customer_id,
            Transaction.amount,
            Transaction.expected_return_date,
            Customer.name,
            User.expo_push_token,
            User.telegram_chat_id,
        )
        .join(Customer, Customer.id == Transaction.customer_id)
        .join(User, User.id == Transaction.user_id)
        .filter(
            Transaction.type == TransactionType.DEBT,
            Transaction.expected_return_date.isnot(None),
            Transaction.expected_return_date <= today,
            ~already_notified,
        )
    )
    if user_id is not None:
        q = q.filter(Transaction.user_id == user_id)
    rows = q.order_by(Transaction.user_id, Transaction.expected_return_date).all()
    return [
        DueTransaction(
            transaction_id=r[0],
            user_id=r[1],
            customer_id=r[2],
            amount=r[3],
            expected_return_date=r[4],
            customer_name=r[5],
            push_token=r[6],
            telegram_chat_id=r[7],
        )
        for r in rows
    ]


def get_overdue_items(db: Session, user_id: str, today: date | None = None) -> list[OverdueItem]:
    """
    One item per customer with at least one overdue DEBT: amount is the customer's net balance
    over all their transactions, due date the earliest overdue one. Customers whose balance is
    <= 0 are settled and skipped even if a DEBT row is technically overdue.
    """
    today = today or local_today()
    customers = (
        db.query(Customer)
        .filter(
            Customer.user_id == user_id,
            Customer.transactions.any(
                (Transaction.type == TransactionType.DEBT)
                & Transaction.expected_return_date.isnot(None)
                & (Transaction.expected_return_date <= today)
            ),
        )
        .options(selectinload(Customer.transactions))
        .all()
    )
    items: list[OverdueItem] = []
    for customer in customers:
        balance = net_balance(customer.transactions)
        if balance <= 0:
            continue
        overdue_dates = [tx.expected_return_date for tx in customer.transactions if _is_overdue(tx, today)]
        if not overdue_dates:
            continue
        items.append(
            OverdueItem(
                customer_name=customer.name,
                customer_phone=customer.phone,
                amount=balance,
                expected_return_date=min(overdue_dates),
            )
        )
    return items
