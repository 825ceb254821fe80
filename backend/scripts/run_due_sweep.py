#!/usr/bin/env python3
"""
Run the due-debt sweep once (same as the daily cron job and POST /api/notifications/trigger).
Safe to repeat: debts that already have a notification are skipped.
Run: cd backend && poetry run python scripts/run_due_sweep.py
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.db.session import SessionLocal
from app.services.notification_sweep import process_all_users_notifications


def main():
    print("Running due-debt sweep...")
    db = SessionLocal()
    try:
        result = process_all_users_notifications(db)
        print(
            f"Done. due_found={result.due_found}, notifications_created={result.notifications_created}, "
            f"users_failed={len(result.users_failed)}, push_messages={result.push_messages}, "
            f"chat_sent={result.chat_sent}, chat_failed={result.chat_failed}"
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
