"""
Pending Telegram link codes: code -> (user_id, expires_at), held in process memory.

Codes are single-use capability tokens. consume() removes the entry under the lock, so two
webhook deliveries with the same code cannot both succeed. Expired entries are swept on every
issue(). Lost on restart; the user just asks for a new link.
"""
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.config import settings


@dataclass(frozen=True)
class PendingLink:
    user_id: str
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingLinkStore:
    def __init__(
        self,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = ttl or timedelta(minutes=settings.link_code_ttl_minutes)
        self._clock = clock
        self._links: dict[str, PendingLink] = {}
        self._lock = threading.Lock()

    def issue(self, user_id: str) -> str:
        """Mint a fresh unguessable code for user_id and drop any expired entries."""
        now = self._clock()
        with self._lock:
            self._sweep_locked(now)
            code = secrets.token_hex(16)
            while code in self._links:
                code = secrets.token_hex(16)
            self._links[code] = PendingLink(user_id=user_id, expires_at=now + self._ttl)
        return code

    def consume(self, code: str) -> str | None:
        """Remove the code and return its user_id, or None if unknown or expired."""
        with self._lock:
            link = self._links.pop(code, None)
        if link is None or link.expires_at < self._clock():
            return None
        return link.user_id

    def sweep_expired(self) -> int:
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: datetime) -> int:
        expired = [code for code, link in self._links.items() if link.expires_at < now]
        for code in expired:
            del self._links[code]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)

    def __contains__(self, code: object) -> bool:
        with self._lock:
            return code in self._links


# Process-wide store shared by the link endpoint and the webhook
pending_links = PendingLinkStore()
