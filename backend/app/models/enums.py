"""Tagged variants stored on transactions and notifications."""
import enum


class TransactionType(str, enum.Enum):
    DEBT = "DEBT"
    PAYMENT = "PAYMENT"


class NotificationType(str, enum.Enum):
    """Notification kinds. Uniqueness per transaction is scoped by (transaction_id, type)."""

    PAYMENT_DUE = "PAYMENT_DUE"
