"""
Customer balance = sum(DEBT) - sum(PAYMENT). Positive: customer owes money.
Always derived from the transaction log, never stored.
"""
from typing import Iterable

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.errors import MSG_CUSTOMER_NOT_FOUND, NotFoundError
from app.models.customer import Customer
from app.models.enums import TransactionType
from app.models.transaction import Transaction


def signed_amount(tx_type: TransactionType, amount: int) -> int:
    return amount if tx_type == TransactionType.DEBT else -amount


def net_balance(transactions: Iterable) -> int:
    """Signed sum over objects with .type and .amount. Negative (overpaid) is kept as is."""
    return sum(signed_amount(tx.type, tx.amount) for tx in transactions)


def compute_balance(db: Session, customer_id: str) -> int:
    """One aggregate query; a customer with no transactions has balance 0."""
    signed = case(
        (Transaction.type == TransactionType.DEBT, Transaction.amount),
        else_=-Transaction.amount,
    )
    total = (
        db.query(func.coalesce(func.sum(signed), 0))
        .filter(Transaction.customer_id == customer_id)
        .scalar()
    )
    return int(total or 0)


def get_customer_balance(db: Session, user_id: str, customer_id: str) -> dict:
    """Balance for a customer owned by user_id. Raises NotFoundError otherwise."""
    customer = (
        db.query(Customer)
        .filter(Customer.id == customer_id, Customer.user_id == user_id)
        .first()
    )
    if not customer:
        raise NotFoundError(MSG_CUSTOMER_NOT_FOUND)
    return {"customerId": customer.id, "name": customer.name, "balance": compute_balance(db, customer.id)}
