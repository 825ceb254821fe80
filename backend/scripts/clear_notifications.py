#!/usr/bin/env python3
"""
Completely clear the notification inbox for all users. Fast (TRUNCATE, PostgreSQL).
Due debts are detected again on the next sweep or inbox read.
Run: cd backend && poetry run python scripts/clear_notifications.py
"""
import sys
from pathlib import Path

# backend/scripts/ -> backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text

from app.db.session import engine
from app.db.tables import NOTIFICATION_TABLE_NAMES


def main():
    tables = ", ".join(NOTIFICATION_TABLE_NAMES)
    print(f"Connecting to DB and truncating {tables} ...")
    with engine.connect() as conn:
        conn.execute(text(f"TRUNCATE TABLE {tables}"))
        conn.commit()
    print("Done. Notification tables are empty.")


if __name__ == "__main__":
    main()
