from app.models.customer import Customer
from app.models.enums import NotificationType, TransactionType
from app.models.notification import Notification
from app.models.transaction import Transaction
from app.models.user import User

__all__ = [
    "Customer",
    "Notification",
    "NotificationType",
    "Transaction",
    "TransactionType",
    "User",
]
