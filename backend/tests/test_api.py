from app.config import settings
from app.models import Notification, User

BOT_USERNAME = "QarzDaftarBot"


def _update(chat_id: int, text: str) -> dict:
    return {"update_id": 7, "message": {"message_id": 3, "chat": {"id": chat_id}, "text": text}}


# --- Auth ---


def test_requires_bearer_token(client):
    resp = client.get("/api/notifications")
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_rejects_bad_token(client):
    resp = client.get("/api/notifications", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


# --- Notifications ---


def test_list_detects_due_debts(client, make_user, make_customer, add_debt, auth_headers):
    user = make_user()
    add_debt(make_customer(user, name="Aziz", phone="+998901112233"), 300_000, days_ago=1)

    body = client.get("/api/notifications", headers=auth_headers(user)).json()
    assert body["success"] is True
    (item,) = body["data"]
    assert item["type"] == "PAYMENT_DUE"
    assert item["isRead"] is False
    assert item["customerName"] == "Aziz"
    assert item["message"] == "Aziz bugun 300 000 so'm qaytarishi kerak"

    again = client.get("/api/notifications", headers=auth_headers(user)).json()
    assert len(again["data"]) == 1


def test_limit_is_bounded(client, make_user, auth_headers):
    user = make_user()
    assert client.get("/api/notifications?limit=0", headers=auth_headers(user)).status_code == 422
    assert client.get("/api/notifications?limit=101", headers=auth_headers(user)).status_code == 422
    assert client.get("/api/notifications?limit=100", headers=auth_headers(user)).status_code == 200


def test_unread_count_and_mark_read(client, make_user, make_customer, add_debt, auth_headers):
    user = make_user()
    customer = make_customer(user)
    add_debt(customer, 1_000, days_ago=1)
    add_debt(customer, 2_000, days_ago=2)
    headers = auth_headers(user)

    assert client.get("/api/notifications/unread-count", headers=headers).json()["data"] == {"count": 2}
    first_id = client.get("/api/notifications", headers=headers).json()["data"][0]["id"]

    assert client.patch(f"/api/notifications/{first_id}/read", headers=headers).status_code == 200
    assert client.patch(f"/api/notifications/{first_id}/read", headers=headers).status_code == 200
    assert client.get("/api/notifications/unread-count", headers=headers).json()["data"] == {"count": 1}

    resp = client.patch("/api/notifications/read-all", headers=headers)
    assert resp.json()["data"] == {"markedCount": 1}
    assert client.get("/api/notifications/unread-count", headers=headers).json()["data"] == {"count": 0}


def test_other_users_notification_is_404(client, make_user, make_customer, add_debt, auth_headers):
    owner, stranger = make_user(), make_user()
    add_debt(make_customer(owner), 1_000, days_ago=1)
    (item,) = client.get("/api/notifications", headers=auth_headers(owner)).json()["data"]

    requests = [
        ("PATCH", f"/api/notifications/{item['id']}/read"),
        ("DELETE", f"/api/notifications/{item['id']}"),
    ]
    for method, path in requests:
        resp = client.request(method, path, headers=auth_headers(stranger))
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "message": "Bildirishnoma topilmadi"}


def test_delete_and_clear(client, db, make_user, make_customer, add_debt, auth_headers):
    user = make_user()
    customer = make_customer(user)
    add_debt(customer, 1_000, days_ago=1)
    add_debt(customer, 2_000, days_ago=1)
    headers = auth_headers(user)
    items = client.get("/api/notifications", headers=headers).json()["data"]

    assert client.delete(f"/api/notifications/{items[0]['id']}", headers=headers).status_code == 200
    assert db.query(Notification).count() == 1

    resp = client.delete("/api/notifications", headers=headers)
    assert resp.json()["data"] == {"deletedCount": 1}
    assert db.query(Notification).count() == 0


def test_trigger_runs_sweep(client, make_user, make_customer, add_debt, auth_headers, unconfigured_bot):
    user = make_user()
    add_debt(make_customer(user), 1_000, days_ago=0)

    body = client.post("/api/notifications/trigger", headers=auth_headers(user)).json()
    assert body["data"] == {"dueFound": 1, "notificationsCreated": 1, "chatSent": 0}


def test_trigger_forbidden_in_production(client, make_user, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    resp = client.post("/api/notifications/trigger", headers=auth_headers(make_user()))
    assert resp.status_code == 403


# --- Users ---


def test_push_token_roundtrip(client, db, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    resp = client.post("/api/users/push-token", json={"token": "ExponentPushToken[abc123]"}, headers=headers)
    assert resp.status_code == 200
    db.expire_all()
    assert db.get(User, user.id).expo_push_token == "ExponentPushToken[abc123]"
    settings_body = client.get("/api/users/notification-settings", headers=headers).json()["data"]
    assert settings_body["pushEnabled"] is True

    assert client.delete("/api/users/push-token", headers=headers).status_code == 200
    db.expire_all()
    assert db.get(User, user.id).expo_push_token is None


def test_invalid_push_token_rejected(client, make_user, auth_headers):
    resp = client.post("/api/users/push-token", json={"token": "fcm:xyz"}, headers=auth_headers(make_user()))
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_unknown_user_is_404(client, auth_headers):
    ghost = User(id="00000000-0000-0000-0000-000000000000")
    resp = client.get("/api/users/notification-settings", headers=auth_headers(ghost))
    assert resp.status_code == 404


def test_telegram_link_when_unconfigured(client, make_user, auth_headers, unconfigured_bot):
    data = client.get("/api/users/telegram-link", headers=auth_headers(make_user())).json()["data"]
    assert data == {"url": None, "isLinked": False, "isConfigured": False}


def test_telegram_link_flow_through_webhook(client, db, make_user, auth_headers, bot, telegram):
    user = make_user()
    headers = auth_headers(user)

    data = client.get("/api/users/telegram-link", headers=headers).json()["data"]
    assert data["url"].startswith(f"https://t.me/{BOT_USERNAME}?start=")
    code = data["url"].rsplit("=", 1)[1]

    assert client.post("/api/telegram/webhook", json=_update(9001, f"/start {code}")).json() == {"ok": True}
    db.expire_all()
    assert db.get(User, user.id).telegram_chat_id == "9001"

    linked = client.get("/api/users/telegram-link", headers=headers).json()["data"]
    assert linked == {"url": None, "isLinked": True, "isConfigured": True}

    assert client.delete("/api/users/telegram-link", headers=headers).status_code == 200
    db.expire_all()
    assert db.get(User, user.id).telegram_chat_id is None
    assert telegram.texts_to("9001")[-1].startswith("Telegram hisobingiz Qarz Daftar ilovasidan uzildi")


def test_webhook_rejects_wrong_secret(client, bot, telegram, monkeypatch):
    monkeypatch.setattr(settings, "telegram_webhook_secret", "s3cret")

    resp = client.post("/api/telegram/webhook", json=_update(1, "/start"))
    assert resp.status_code == 403
    resp = client.post(
        "/api/telegram/webhook",
        json=_update(1, "/start"),
        headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
    )
    assert resp.status_code == 403
    assert telegram.sent() == []

    resp = client.post(
        "/api/telegram/webhook",
        json=_update(1, "/start"),
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )
    assert resp.status_code == 200
    assert len(telegram.texts_to("1")) == 1


def test_webhook_non_ascii_secret_is_rejected(client, bot, telegram, monkeypatch):
    monkeypatch.setattr(settings, "telegram_webhook_secret", "s3cret")

    resp = client.post(
        "/api/telegram/webhook",
        json=_update(1, "/start"),
        headers={"X-Telegram-Bot-Api-Secret-Token": "\u00e9".encode()},
    )
    assert resp.status_code == 403
    assert telegram.sent() == []


def test_webhook_acknowledges_garbage(client, bot, telegram):
    resp = client.post("/api/telegram/webhook", content=b"not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert client.post("/api/telegram/webhook", json={"update_id": 1}).json() == {"ok": True}
    assert telegram.sent() == []


# --- Customers ---


def test_customer_balance(client, make_user, make_customer, add_debt, add_payment, auth_headers):
    user = make_user()
    customer = make_customer(user, name="Malika")
    add_debt(customer, 500_000)
    add_payment(customer, 200_000)

    data = client.get(f"/api/customers/{customer.id}/balance", headers=auth_headers(user)).json()["data"]
    assert data == {"customerId": customer.id, "name": "Malika", "balance": 300_000}

    assert client.get(f"/api/customers/{customer.id}/balance", headers=auth_headers(make_user())).status_code == 404
