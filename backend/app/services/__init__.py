from app.services.balance import get_customer_balance
from app.services.notification_ledger import get_unread_count, list_notifications
from app.services.notification_sweep import process_all_users_notifications

__all__ = ["get_customer_balance", "get_unread_count", "list_notifications", "process_all_users_notifications"]
