"""
Send push notifications via the Expo Push API (https://docs.expo.dev/push-notifications/sending-notifications/).
No credentials needed: the user's Expo push token is the address.

Best effort: invalid tokens are dropped with a warning, failed chunks are logged and the next
chunk is still attempted, nothing is retried and nothing raises to the caller. By the time a
push goes out the notification row is already committed.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence

import httpx

from app.config import settings
from app.core.constants import EXPO_TOKEN_PREFIXES

logger = logging.getLogger(__name__)

_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


@dataclass(frozen=True)
class PushMessage:
    token: str
    title: str
    body: str
    data: dict[str, Any] | None = None


@dataclass
class PushBatchResult:
    sent: int = 0  # messages in chunks the provider accepted
    failed: int = 0  # messages in chunks that errored
    invalid: int = 0  # dropped before sending
    requests: int = 0  # HTTP calls attempted
    ticket_errors: list[dict[str, Any]] = field(default_factory=list)


def is_expo_push_token(token: str | None) -> bool:
    return isinstance(token, str) and token.startswith(EXPO_TOKEN_PREFIXES) and token.endswith("]")


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _to_expo(message: PushMessage) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "to": message.token,
        "title": message.title,
        "body": message.body,
        "sound": "default",
    }
    if message.data:
        payload["data"] = message.data
    return payload


def _post_chunk(client: httpx.Client, chunk: Sequence[PushMessage], result: PushBatchResult) -> None:
    result.requests += 1
    try:
        resp = client.post(settings.expo_push_url, json=[_to_expo(m) for m in chunk], headers=_HEADERS)
    except httpx.HTTPError as e:
        result.failed += len(chunk)
        logger.warning("Expo push request failed for chunk of %s: %s", len(chunk), e)
        return
    if not resp.is_success:
        result.failed += len(chunk)
        logger.warning("Expo push returned %s for chunk of %s: %s", resp.status_code, len(chunk), resp.text[:500])
        return
    result.sent += len(chunk)
    try:
        body = resp.json()
    except ValueError:
        body = {}
    tickets = (body.get("data") if isinstance(body, dict) else None) or []
    for ticket in tickets:
        if isinstance(ticket, dict) and ticket.get("status") == "error":
            result.ticket_errors.append(ticket)
            logger.warning("Expo push ticket error: %s %s", ticket.get("message"), ticket.get("details"))


def send_push_batch(
    messages: Sequence[PushMessage],
    *,
    client: httpx.Client | None = None,
    batch_size: int | None = None,
) -> PushBatchResult:
    """
    Validate tokens, then POST valid messages in chunks of batch_size (Expo allows 100 per request).
    A failed chunk does not stop later chunks.
    """
    result = PushBatchResult()
    valid: list[PushMessage] = []
    for m in messages:
        if is_expo_push_token(m.token):
            valid.append(m)
        else:
            result.invalid += 1
            logger.warning("Dropping push with invalid Expo token: %s", (m.token or "")[:40])
    if not valid:
        return result

    size = batch_size or settings.push_batch_size
    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=settings.http_timeout_seconds)
    try:
        for chunk in chunked(valid, size):
            _post_chunk(client, chunk, result)
    finally:
        if own_client:
            client.close()
    logger.info(
        "Expo push: %s sent, %s failed, %s invalid in %s requests",
        result.sent, result.failed, result.invalid, result.requests,
    )
    return result
