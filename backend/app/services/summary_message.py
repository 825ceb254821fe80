"""
Overdue summary for one shopkeeper, sent over Telegram (HTML parse mode).

Pure: no DB, no network. Callers pass the items and "today"; everything else is derived here.
"""
import html
from dataclasses import dataclass
from datetime import date

from app.core.constants import CRITICAL_OVERDUE_DAYS, CURRENCY_SUFFIX

NOTHING_OVERDUE_MESSAGE = "✅ Hozirda muddati o'tgan nasiyalar yo'q."
DEFAULT_MAX_ITEMS = 5


@dataclass(frozen=True)
class OverdueItem:
    customer_name: str
    customer_phone: str | None
    amount: int  # customer's net balance, not a single transaction amount
    expected_return_date: date  # earliest overdue due date


def format_amount(amount: int) -> str:
    """1234567 -> '1 234 567'."""
    return f"{abs(amount):,}".replace(",", " ")


def format_date(d: date) -> str:
    return d.strftime("%d.%m.%Y")


def overdue_days(expected: date, today: date) -> int:
    """Whole days past due; 0 for due today (or not yet due)."""
    return max((today - expected).days, 0)


def overdue_text(expected: date, today: date) -> str:
    days = overdue_days(expected, today)
    if days == 0:
        return "bugun"
    return f"{days} kun kechikkan"


def _bucket_counts(items: list[OverdueItem], today: date) -> tuple[int, int, int]:
    critical = warning = due_today = 0
    for item in items:
        days = overdue_days(item.expected_return_date, today)
        if days >= CRITICAL_OVERDUE_DAYS:
            critical += 1
        elif days >= 1:
            warning += 1
        else:
            due_today += 1
    return critical, warning, due_today


def _item_lines(index: int, item: OverdueItem, today: date) -> str:
    line = f"{index}. <b>{html.escape(item.customer_name)}</b> - {format_amount(item.amount)} {CURRENCY_SUFFIX}"
    if item.customer_phone:
        line += f"\n   📞 {html.escape(item.customer_phone)}"
    line += f"\n   📅 Muddati: {format_date(item.expected_return_date)} ({overdue_text(item.expected_return_date, today)})"
    return line


def build_overdue_message(
    items: list[OverdueItem],
    today: date,
    max_items: int = DEFAULT_MAX_ITEMS,
) -> str:
    """
    Header (customer count, total, non-empty lateness buckets), then the top max_items by
    amount, then one aggregate line for whatever did not fit. Items with amount <= 0 are
    settled and never shown.
    """
    owing = [item for item in items if item.amount > 0]
    if not owing:
        return NOTHING_OVERDUE_MESSAGE

    owing.sort(key=lambda item: item.amount, reverse=True)
    total = sum(item.amount for item in owing)
    critical, warning, due_today = _bucket_counts(owing, today)

    msg = "📊 <b>Bugungi holat:</b>\n"
    msg += f"   👥 {len(owing)} ta mijoz qarzdor\n"
    msg += f"   💰 Jami: {format_amount(total)} {CURRENCY_SUFFIX}\n"
    if critical:
        msg += f"   🔴 {CRITICAL_OVERDUE_DAYS}+ kun kechikkan: {critical} ta\n"
    if warning:
        msg += f"   🟡 1-{CRITICAL_OVERDUE_DAYS - 1} kun kechikkan: {warning} ta\n"
    if due_today:
        msg += f"   🟢 Bugun muddati: {due_today} ta\n"

    top = owing[:max_items]
    msg += "\n📋 <b>Eng muhim nasiyalar:</b>\n\n"
    msg += "\n\n".join(_item_lines(i, item, today) for i, item in enumerate(top, start=1))

    rest = owing[max_items:]
    if rest:
        rest_amount = sum(item.amount for item in rest)
        msg += f"\n\n... va yana <b>{len(rest)} ta</b> nasiya ({format_amount(rest_amount)} {CURRENCY_SUFFIX})"

    msg += "\n\n💡 To'liq ro'yxat uchun Qarz Daftar ilovasini oching."
    return msg
