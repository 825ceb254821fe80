import os

# Configure before any app module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_WEBHOOK_SECRET"] = ""
os.environ["TELEGRAM_WEBHOOK_URL"] = ""

import json
from datetime import date, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.deps import create_access_token
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.main import app
from app.models import Customer, Transaction, TransactionType, User
from app.services.due_debts import local_today
from app.services.link_codes import pending_links
from app.services.telegram import client as telegram_client
from app.services.telegram.client import TelegramBot

BOT_USERNAME = "QarzDaftarBot"


@pytest.fixture
def db():
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def today() -> date:
    return local_today()


@pytest.fixture
def make_user(db):
    def _make(**kwargs) -> User:
        user = User(**kwargs)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_customer(db):
    def _make(user: User, name: str = "Abdulloh Karimov", phone: str | None = "+998901001010") -> Customer:
        customer = Customer(user_id=user.id, name=name, phone=phone)
        db.add(customer)
        db.commit()
        return customer

    return _make


@pytest.fixture
def add_debt(db, today):
    def _add(customer: Customer, amount: int, days_ago: int | None = None) -> Transaction:
        tx = Transaction(
            user_id=customer.user_id,
            customer_id=customer.id,
            type=TransactionType.DEBT,
            amount=amount,
            expected_return_date=None if days_ago is None else today - timedelta(days=days_ago),
        )
        db.add(tx)
        db.commit()
        return tx

    return _add


@pytest.fixture
def add_payment(db):
    def _add(customer: Customer, amount: int) -> Transaction:
        tx = Transaction(
            user_id=customer.user_id,
            customer_id=customer.id,
            type=TransactionType.PAYMENT,
            amount=amount,
        )
        db.add(tx)
        db.commit()
        return tx

    return _add


class TelegramRecorder:
    """Fake Bot API behind httpx.MockTransport; records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.fail_send = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content or b"{}")
        self.calls.append((method, body))
        if method == "getMe":
            return httpx.Response(200, json={"ok": True, "result": {"id": 1, "username": BOT_USERNAME}})
        if method == "sendMessage" and self.fail_send:
            return httpx.Response(502, json={"ok": False, "description": "Bad Gateway"})
        return httpx.Response(200, json={"ok": True, "result": {}})

    def sent(self) -> list[dict]:
        return [body for method, body in self.calls if method == "sendMessage"]

    def texts_to(self, chat_id: str) -> list[str]:
        return [body["text"] for body in self.sent() if body["chat_id"] == chat_id]


@pytest.fixture
def telegram():
    return TelegramRecorder()


@pytest.fixture
def bot(telegram, monkeypatch) -> TelegramBot:
    """Configured bot talking to the recorder; also installed as the process-wide bot."""
    instance = TelegramBot(token="123:test", transport=httpx.MockTransport(telegram.handler))
    monkeypatch.setattr(telegram_client, "_bot", instance)
    return instance


@pytest.fixture
def unconfigured_bot(monkeypatch) -> TelegramBot:
    instance = TelegramBot(token="")
    monkeypatch.setattr(telegram_client, "_bot", instance)
    return instance


@pytest.fixture(autouse=True)
def _reset_pending_links():
    yield
    with pending_links._lock:
        pending_links._links.clear()


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
