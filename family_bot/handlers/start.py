"""
Хендлеры /start, /help и /app — приветствие и меню.
"""

from __future__ import annotations

import logging

from aiogram import Dispatcher
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from family_bot.handlers.common import load_user_context
from family_bot.keyboards import get_main_keyboard, get_webapp_keyboard
from family_bot.repositories.users import UsersRepository

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Просто напиши, что произошло, — я разберу и сохраню:\n\n"
    "💸 «Потратил 1200 на бензин, проект Cars»\n"
    "💰 «Получил 15000 за глэмпинг»\n"
    "📋 «Саше купить корм собаке до пятницы»\n"
    "💡 «Идея: сделать баню у озера»\n"
    "⏰ «Напомни через 2 часа забрать посылку»\n\n"
    "Можно голосом.\n\n"
    "Команды:\n"
    "/notify — кому ещё присылать уведомления о записях\n"
    "/cancel — выйти из настройки уведомлений\n"
    "/team — команда: имя → chat_id\n"
    "/sheets &lt;ссылка&gt; | off — зеркало в Google Таблицу\n"
    "/recent — последние записи\n"
    "/app — открыть дашборд"
)


def welcome_text(first_name: str | None, webapp_url: str | None) -> str:
    name = f", {first_name}" if first_name else ""
    text = (
        f"👋 Привет{name}! Я семейный помощник.\n\n"
        "Записываю траты и доходы, задачи, идеи и напоминания по проектам — "
        "из обычных сообщений.\n\n"
        "Напиши /help, чтобы увидеть примеры."
    )
    if not webapp_url:
        text += "\n\n<i>⚠️ WEBAPP_URL не настроен</i>"
    return text


def register_start_handlers(
    dp: Dispatcher,
    users: UsersRepository,
    webapp_url: str | None = None,
) -> None:
    """Регистрирует /start, /help, /app."""

    @dp.message(CommandStart())
    async def cmd_start(message: Message) -> None:
        try:
            await load_user_context(users, message.chat.id, message.from_user)
        except Exception:  # noqa: BLE001
            logger.exception("Не удалось зарегистрировать пользователя %s", message.chat.id)
        first_name = message.from_user.first_name if message.from_user else None
        await message.answer(
            welcome_text(first_name, webapp_url),
            reply_markup=get_main_keyboard(webapp_url),
        )

    @dp.message(Command("help"))
    async def cmd_help(message: Message) -> None:
        await message.answer(HELP_TEXT, reply_markup=get_main_keyboard(webapp_url))

    @dp.message(Command("app"))
    async def cmd_app(message: Message) -> None:
        if not webapp_url:
            await message.answer("Дашборд пока не подключён.")
            return
        await message.answer("📱 Дашборд:", reply_markup=get_webapp_keyboard(webapp_url))
