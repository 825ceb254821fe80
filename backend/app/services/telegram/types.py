"""
Typed definitions for the Telegram Bot API webhook payload.

Only the fields the bot reads are listed; Telegram sends many more.
"""
from typing import TypedDict


class TelegramChat(TypedDict, total=False):
    id: int
    type: str  # private | group | supergroup | channel


class TelegramMessage(TypedDict, total=False):
    message_id: int
    chat: TelegramChat
    text: str


class TelegramUpdate(TypedDict, total=False):
    update_id: int
    message: TelegramMessage
