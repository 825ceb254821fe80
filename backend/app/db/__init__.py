from app.db.base import Base
from app.db.session import get_db, engine, SessionLocal
from app.db.tables import ALL_TABLE_NAMES, NOTIFICATION_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "NOTIFICATION_TABLE_NAMES"]
