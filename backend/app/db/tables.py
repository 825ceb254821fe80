"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE). alembic/env.py asserts the
model metadata matches this list.
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "users",
    "customers",
    "transactions",
    "notifications",
)

# Tables cleared when resetting the inbox (TRUNCATE).
NOTIFICATION_TABLE_NAMES = ("notifications",)
