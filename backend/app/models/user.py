"""Shopkeeper account. Push token and Telegram chat id are updated independently."""
import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    phone = Column(String(32), nullable=True, unique=True)
    name = Column(String(255), nullable=True)
    expo_push_token = Column(String(256), nullable=True)
    telegram_chat_id = Column(String(64), nullable=True, unique=True, index=True)  # NULL = unlinked
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    customers = relationship("Customer", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
