from datetime import timedelta

import pytest

from app.models import Customer, Notification
from app.services import notification_ledger, notification_sweep
from app.services import telegram as notification_sweep_telegram
from app.services.notification_sweep import process_all_users_notifications
from app.services.push import PushBatchResult


class PushRecorder:
    def __init__(self) -> None:
        self.batches: list[list] = []

    def __call__(self, messages):
        self.batches.append(list(messages))
        return PushBatchResult(sent=len(messages), requests=1)

    @property
    def messages(self) -> list:
        return [m for batch in self.batches for m in batch]


@pytest.fixture
def push():
    return PushRecorder()


def test_nothing_due_sends_nothing(db, make_user, make_customer, add_debt, push, bot, telegram):
    add_debt(make_customer(make_user(telegram_chat_id="1")), 1_000, days_ago=-2)

    result = process_all_users_notifications(db, push_sender=push, bot=bot)
    assert result.due_found == 0
    assert push.batches == []
    assert telegram.sent() == []


def test_records_and_pushes_each_new_debt(db, make_user, make_customer, add_debt, push, bot):
    user = make_user(expo_push_token="ExponentPushToken[u1]")
    customer = make_customer(user, name="Bekzod")
    tx = add_debt(customer, 75_000, days_ago=0)

    result = process_all_users_notifications(db, push_sender=push, bot=bot)

    assert result.due_found == 1
    assert result.notifications_created == 1
    assert db.query(Notification).count() == 1
    (message,) = push.messages
    assert message.token == "ExponentPushToken[u1]"
    assert message.title == "To'lov muddati keldi"
    assert message.body == "Bekzod bugun 75 000 so'm qaytarishi kerak"
    assert message.data == {"type": "PAYMENT_DUE", "customerId": customer.id, "transactionId": tx.id}


def test_second_run_is_a_no_op(db, make_user, make_customer, add_debt, push, bot, telegram):
    user = make_user(expo_push_token="ExponentPushToken[u1]", telegram_chat_id="10")
    add_debt(make_customer(user), 1_000, days_ago=1)

    process_all_users_notifications(db, push_sender=push, bot=bot)
    second = process_all_users_notifications(db, push_sender=push, bot=bot)

    assert second.due_found == 0
    assert db.query(Notification).count() == 1
    assert len(push.messages) == 1
    assert len(telegram.texts_to("10")) == 1


def test_lazily_detected_debt_is_not_pushed_again(db, make_user, make_customer, add_debt, push, bot):
    user = make_user(expo_push_token="ExponentPushToken[u1]")
    add_debt(make_customer(user), 1_000, days_ago=1)
    notification_ledger.list_notifications(db, user.id)

    result = process_all_users_notifications(db, push_sender=push, bot=bot)
    assert result.due_found == 0
    assert push.messages == []


def test_chat_summary_combines_a_customers_debts(db, make_user, make_customer, add_debt, push, bot, telegram, today):
    user = make_user(telegram_chat_id="20")
    customer = make_customer(user, name="Sardor")
    add_debt(customer, 100_000, days_ago=12)
    add_debt(customer, 50_000, days_ago=1)

    result = process_all_users_notifications(db, push_sender=push, bot=bot)

    assert result.notifications_created == 2
    assert result.chat_sent == 1
    (text,) = telegram.texts_to("20")
    assert text.count("<b>Sardor</b>") == 1
    assert "<b>Sardor</b> - 150 000 so'm" in text
    assert (today - timedelta(days=12)).strftime("%d.%m.%Y") in text
    assert "12 kun kechikkan" in text
    # No token: nothing to push
    assert push.messages == []


def test_users_without_destinations_still_get_inbox_rows(db, make_user, make_customer, add_debt, push, bot, telegram):
    user = make_user()
    add_debt(make_customer(user), 1_000, days_ago=1)

    result = process_all_users_notifications(db, push_sender=push, bot=bot)
    assert result.notifications_created == 1
    assert push.batches == []
    assert telegram.sent() == []


def test_unconfigured_bot_skips_chat(db, make_user, make_customer, add_debt, push, unconfigured_bot):
    add_debt(make_customer(make_user(telegram_chat_id="30")), 1_000, days_ago=1)
    result = process_all_users_notifications(db, push_sender=push, bot=unconfigured_bot)
    assert result.notifications_created == 1
    assert result.chat_sent == 0
    assert result.chat_failed == 0


def test_chat_failure_is_counted_not_raised(db, make_user, make_customer, add_debt, push, bot, telegram):
    telegram.fail_send = True
    add_debt(make_customer(make_user(telegram_chat_id="40")), 1_000, days_ago=1)

    result = process_all_users_notifications(db, push_sender=push, bot=bot)
    assert result.notifications_created == 1
    assert result.chat_sent == 0
    assert result.chat_failed == 1


def test_push_sender_exception_is_contained(db, make_user, make_customer, add_debt, bot, telegram):
    def exploding(messages):
        raise RuntimeError("provider down")

    add_debt(make_customer(make_user(expo_push_token="ExponentPushToken[x]", telegram_chat_id="50")), 1_000, days_ago=1)
    result = process_all_users_notifications(db, push_sender=exploding, bot=bot)

    assert result.notifications_created == 1
    assert result.push is None
    assert result.chat_sent == 1


def test_one_users_failure_does_not_stop_others(db, make_user, make_customer, add_debt, push, bot, monkeypatch):
    bad = make_user(expo_push_token="ExponentPushToken[bad]")
    good = make_user(expo_push_token="ExponentPushToken[good]")
    add_debt(make_customer(bad, name="B"), 1_000, days_ago=1)
    add_debt(make_customer(good, name="G"), 2_000, days_ago=1)

    real_record = notification_sweep.record_due_notifications

    def flaky_record(session, items):
        if items[0].user_id == bad.id:
            raise RuntimeError("write failed")
        return real_record(session, items)

    monkeypatch.setattr(notification_sweep, "record_due_notifications", flaky_record)
    result = process_all_users_notifications(db, push_sender=push, bot=bot)

    assert result.users_failed == [bad.id]
    assert result.users_processed == 1
    assert [m.token for m in push.messages] == ["ExponentPushToken[good]"]
    assert db.query(Notification).filter(Notification.user_id == good.id).count() == 1
    assert db.query(Notification).filter(Notification.user_id == bad.id).count() == 0


def test_sweep_covers_all_users(db, make_user, make_customer, add_debt, push, bot, telegram):
    for i in range(3):
        user = make_user(telegram_chat_id=str(100 + i), expo_push_token=f"ExponentPushToken[{i}]")
        add_debt(make_customer(user, name=f"C{i}"), 1_000 * (i + 1), days_ago=i)

    result = process_all_users_notifications(db, push_sender=push, bot=bot, max_workers=2)

    assert result.users_processed == 3
    assert result.chat_sent == 3
    assert len(push.messages) == 3
    assert {body["chat_id"] for body in telegram.sent()} == {"100", "101", "102"}


def test_chat_summary_uses_the_sweep_day(db, make_user, make_customer, add_debt, push, bot, telegram, today):
    user = make_user(telegram_chat_id="60")
    add_debt(make_customer(user, name="Zafar"), 90_000, days_ago=-2)

    result = process_all_users_notifications(db, today=today + timedelta(days=3), push_sender=push, bot=bot)

    assert result.notifications_created == 1
    (text,) = telegram.texts_to("60")
    assert "<b>Zafar</b> - 90 000 so'm" in text
    assert "1 kun kechikkan" in text


def test_one_users_summary_failure_does_not_stop_others(
    db, make_user, make_customer, add_debt, push, bot, telegram, monkeypatch
):
    # Ids chosen so the failing user is summarised first
    bad = make_user(id="00000000-0000-0000-0000-000000000001", telegram_chat_id="70")
    good = make_user(id="00000000-0000-0000-0000-000000000002", telegram_chat_id="71")
    add_debt(make_customer(bad, name="B"), 1_000, days_ago=1)
    add_debt(make_customer(good, name="G"), 2_000, days_ago=1)

    real_items = notification_sweep_telegram.get_overdue_items

    def failing_items(session, user_id, today=None):
        if user_id == bad.id:
            # A failed flush leaves the session unusable until rolled back
            session.add(Customer(user_id=user_id, name=None))
            session.flush()
        return real_items(session, user_id, today=today)

    monkeypatch.setattr(notification_sweep_telegram, "get_overdue_items", failing_items)
    result = process_all_users_notifications(db, push_sender=push, bot=bot)

    assert result.chat_failed == 1
    assert result.chat_sent == 1
    assert telegram.texts_to("70") == []
    (text,) = telegram.texts_to("71")
    assert "<b>G</b>" in text
