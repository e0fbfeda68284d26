from __future__ import annotations

import logging

from aiogram import Dispatcher, F
from aiogram.types import CallbackQuery

from family_bot.handlers.common import APOLOGY, load_user_context
from family_bot.handlers.settings import format_team
from family_bot.handlers.start import HELP_TEXT
from family_bot.keyboards import MENU_HELP, MENU_NOTIFY, MENU_RECENT, MENU_TEAM, WIZARD_KIND_PREFIX
from family_bot.models import HOOKED_KINDS
from family_bot.services.formatters import format_recent
from services.pipeline_service import AppServices

logger = logging.getLogger(__name__)


async def handle_menu(callback: CallbackQuery, services: AppServices) -> None:
    await callback.answer()
    message = callback.message
    if message is None:
        return
    chat_id = str(message.chat.id)
    try:
        if callback.data == MENU_HELP:
            await message.answer(HELP_TEXT)
        elif callback.data == MENU_RECENT:
            rows = await services.records.list_recent(HOOKED_KINDS, limit=10, owner_chat_id=chat_id)
            await message.answer(format_recent(rows))
        elif callback.data == MENU_NOTIFY:
            context = await load_user_context(services.users, chat_id, callback.from_user)
            await message.answer(await services.wizard.start(context))
        elif callback.data == MENU_TEAM:
            await message.answer(format_team(await services.users.list_aliases(chat_id)))
        else:
            logger.warning("Неизвестная кнопка меню: %s", callback.data)
    except Exception:  # noqa: BLE001
        logger.exception("Ошибка кнопки %s в чате %s", callback.data, chat_id)
        await message.answer(APOLOGY)


def register_callback_handlers(dp: Dispatcher, services: AppServices) -> None:
    """Кнопки меню (menu:*) и выбор вида записи в мастере (wizard:kind:*)."""

    @dp.callback_query(F.data.startswith("menu:"))
    async def on_menu(callback: CallbackQuery) -> None:
        await handle_menu(callback, services)

    @dp.callback_query(F.data.startswith(WIZARD_KIND_PREFIX))
    async def on_wizard_kind(callback: CallbackQuery) -> None:
        await callback.answer()
        message = callback.message
        if message is None:
            return
        kind = (callback.data or "")[len(WIZARD_KIND_PREFIX):]
        try:
            context = await load_user_context(services.users, message.chat.id, callback.from_user)
            await message.answer(await services.wizard.choose_kind(kind, context))
        except Exception:  # noqa: BLE001
            logger.exception("Ошибка выбора вида в мастере, чат %s", message.chat.id)
            await message.answer(APOLOGY)
