"""Inline-клавиатуры бота."""

from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo

from family_bot.models import HOOKED_KINDS
from family_bot.services.formatters import KIND_TITLES

MENU_HELP = "menu:help"
MENU_NOTIFY = "menu:notify"
MENU_RECENT = "menu:recent"
MENU_TEAM = "menu:team"

WIZARD_KIND_PREFIX = "wizard:kind:"


def get_main_keyboard(webapp_url: str | None) -> InlineKeyboardMarkup:
    """Меню: Web App (если настроен) и быстрые действия."""
    rows: list[list[InlineKeyboardButton]] = []
    if webapp_url:
        rows.append([InlineKeyboardButton(text="📱 Открыть дашборд", web_app=WebAppInfo(url=webapp_url))])
    rows.append(
        [
            InlineKeyboardButton(text="🗂 Последние записи", callback_data=MENU_RECENT),
            InlineKeyboardButton(text="🔔 Уведомления", callback_data=MENU_NOTIFY),
        ]
    )
    rows.append(
        [
            InlineKeyboardButton(text="👥 Команда", callback_data=MENU_TEAM),
            InlineKeyboardButton(text="❓ Помощь", callback_data=MENU_HELP),
        ]
    )
    return InlineKeyboardMarkup(inline_keyboard=rows)


def get_webapp_keyboard(webapp_url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="📱 Открыть дашборд", web_app=WebAppInfo(url=webapp_url))]]
    )


def get_kind_keyboard() -> InlineKeyboardMarkup:
    """Выбор вида записи в мастере /notify."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text=KIND_TITLES[kind].capitalize(),
                    callback_data=f"{WIZARD_KIND_PREFIX}{kind}",
                )
                for kind in HOOKED_KINDS
            ]
        ]
    )
