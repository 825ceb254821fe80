"""Telegram Bot API client: lowest level, sends requests only. Never raises on network errors."""
import logging
import threading
from typing import Any

import httpx

from app.config import settings
from app.core.constants import TELEGRAM_PARSE_MODE

logger = logging.getLogger(__name__)


class TelegramBot:
    """sendMessage, getMe (cached username) and setWebhook over httpx."""

    def __init__(
        self,
        token: str | None = None,
        *,
        api_base: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._token = settings.telegram_bot_token if token is None else token
        self._api_base = (api_base or settings.telegram_api_base).rstrip("/")
        self._timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._username: str | None = None
        self._username_lock = threading.Lock()

    def is_configured(self) -> bool:
        return bool(self._token)

    def _url(self, method: str) -> str:
        return f"{self._api_base}/bot{self._token}/{method}"

    def _call(self, method: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """POST to a Bot API method. Returns the decoded body or {"ok": False, "description": ...}."""
        if not self.is_configured():
            return {"ok": False, "description": "Telegram bot token not configured"}
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as c:
                r = c.post(self._url(method), json=payload or {})
        except httpx.HTTPError as e:
            return {"ok": False, "description": str(e)}
        try:
            body = r.json()
        except ValueError:
            body = {}
        if not r.is_success or not isinstance(body, dict) or not body.get("ok"):
            description = body.get("description") if isinstance(body, dict) else None
            return {"ok": False, "description": description or f"HTTP {r.status_code}: {r.text[:500]}"}
        return body

    def send_message(self, chat_id: str, text: str) -> bool:
        """Send an HTML-formatted message. Returns True if Telegram accepted it."""
        if not self.is_configured():
            logger.warning("Telegram bot token not set; skipping message to %s", chat_id)
            return False
        result = self._call(
            "sendMessage",
            {"chat_id": chat_id, "text": text, "parse_mode": TELEGRAM_PARSE_MODE},
        )
        if not result.get("ok"):
            logger.warning("Telegram sendMessage to %s failed: %s", chat_id, result.get("description"))
            return False
        return True

    def get_username(self) -> str | None:
        """Bot's public @handle from getMe, cached for the process lifetime once resolved."""
        if self._username:
            return self._username
        with self._username_lock:
            if self._username:
                return self._username
            result = self._call("getMe")
            username = (result.get("result") or {}).get("username") if result.get("ok") else None
            if not username:
                logger.warning("Telegram getMe failed: %s", result.get("description"))
                return None
            self._username = username
            return username

    def set_webhook(self, url: str, secret_token: str | None = None) -> bool:
        payload: dict[str, Any] = {"url": url}
        if secret_token:
            payload["secret_token"] = secret_token
        result = self._call("setWebhook", payload)
        if not result.get("ok"):
            logger.warning("Telegram setWebhook failed: %s", result.get("description"))
            return False
        logger.info("Telegram webhook set: %s", url)
        return True


_bot: TelegramBot | None = None


def get_bot() -> TelegramBot:
    global _bot
    if _bot is None:
        _bot = TelegramBot()
    return _bot
