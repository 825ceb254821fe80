"""Inbox notification for a shopkeeper.

type: NotificationType tag; today only PAYMENT_DUE.
transaction_id: the due DEBT this notification is about. UNIQUE (transaction_id, type) is what
keeps the daily sweep and the lazy inbox path from notifying the same debt twice.
"""
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, String, Text, UniqueConstraint, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import NotificationType


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        UniqueConstraint("transaction_id", "type", name="uq_notifications_transaction_type"),
        Index("ix_notifications_user_created_at", "user_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    transaction_id = Column(String(36), ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True)
    type = Column(Enum(NotificationType, native_enum=False, length=32), nullable=False, default=NotificationType.PAYMENT_DUE)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    customer = relationship("Customer")
