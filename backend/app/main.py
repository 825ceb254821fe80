"""
FastAPI app entrypoint.

Qarz Daftar backend: overdue-debt notifications (inbox, Expo push, Telegram bot).
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from app.api.routes import customers, notifications, telegram, users
from app.config import settings
from app.core.errors import AppError, app_error_handler
from app.scheduler.due_debts_job import schedule_due_debts_sweep
from app.services.telegram import get_bot

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
for _noisy in ("httpx", "httpcore", "apscheduler"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Scheduler: daily due-debt sweep
_scheduler = BackgroundScheduler(timezone=settings.app_timezone)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.scheduler_enabled:
        schedule_due_debts_sweep(_scheduler)
        _scheduler.start()
        app.state.scheduler = _scheduler
    if settings.telegram_webhook_url:
        get_bot().set_webhook(settings.telegram_webhook_url, settings.telegram_webhook_secret or None)
    logger.info("Backend ready (%s)", settings.environment)
    yield
    if _scheduler.running:
        _scheduler.shutdown(wait=False)


app = FastAPI(title="Qarz Daftar", version="0.1.0", lifespan=lifespan)

# CORS: optional CORS_ORIGINS env (comma-separated); the mobile app does not need it
_cors_origins = [
    "http://localhost:8081",
    "http://127.0.0.1:8081",
]
_cors_extra = os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)

app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(customers.router, prefix="/api/customers", tags=["customers"])
app.include_router(telegram.router, prefix="/api/telegram", tags=["telegram"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
