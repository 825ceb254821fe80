"""
Telegram Bot API webhook.

Telegram retries any non-2xx response, so once the secret matches we always answer 200,
even if the body is malformed or handling failed.
"""
import hmac
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.config import settings
from app.core.constants import TELEGRAM_SECRET_HEADER
from app.db.session import get_db
from app.services.telegram import handle_update

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhook")
async def telegram_webhook(request: Request, db: Session = Depends(get_db)) -> Any:
    secret = settings.telegram_webhook_secret
    if secret:
        given = request.headers.get(TELEGRAM_SECRET_HEADER) or ""
        if not hmac.compare_digest(given.encode(), secret.encode()):
            return JSONResponse(status_code=403, content={"ok": False})
    try:
        update = await request.json()
    except ValueError:
        logger.warning("Telegram webhook: body is not JSON")
        return {"ok": True}
    try:
        await run_in_threadpool(handle_update, db, update)
    except Exception as e:
        db.rollback()
        logger.exception("Telegram webhook: handling update failed: %s", e)
    return {"ok": True}
