"""DEBT or PAYMENT entry. Immutable once created except for deletion.

user_id duplicates customer.user_id so per-user and all-user scans need no join.
expected_return_date is only meaningful on DEBT rows.
"""
import uuid

from sqlalchemy import BigInteger, CheckConstraint, Column, Date, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import TransactionType


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_type_expected_return_date", "type", "expected_return_date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(TransactionType, native_enum=False, length=16), nullable=False)
    amount = Column(BigInteger, nullable=False)  # minor units, always positive
    note = Column(Text, nullable=True)
    expected_return_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    customer = relationship("Customer", back_populates="transactions")
