"""
Хендлеры настроек: /notify (мастер уведомлений), /cancel, /sheets, /team, /recent.
"""

from __future__ import annotations

import logging
import re
from html import escape

from aiogram import Dispatcher
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from family_bot.handlers.common import APOLOGY, load_user_context
from family_bot.models import HOOKED_KINDS
from family_bot.services.formatters import format_recent
from services.pipeline_service import AppServices

logger = logging.getLogger(__name__)

_SPREADSHEET_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
_SPREADSHEET_ID_RE = re.compile(r"^[a-zA-Z0-9-_]{20,}$")
_CHAT_ID_RE = re.compile(r"^-?\d+$")


def extract_spreadsheet_id(value: str) -> str | None:
    """ID таблицы из ссылки Google Sheets или «голого» ID."""
    value = value.strip()
    match = _SPREADSHEET_RE.search(value)
    if match:
        return match.group(1)
    if _SPREADSHEET_ID_RE.match(value):
        return value
    return None


def parse_team_args(args: str) -> tuple[str, str] | None:
    """«Саша 123456» → ("Саша", "123456"). chat_id — последнее слово."""
    parts = args.split()
    if len(parts) < 2 or not _CHAT_ID_RE.match(parts[-1]):
        return None
    return " ".join(parts[:-1]), parts[-1]


def format_team(aliases: dict[str, str]) -> str:
    if not aliases:
        return (
            "👥 Команда пуста.\n\n"
            "Добавь человека: <code>/team Саша 123456789</code>\n"
            "Тогда задачи для Саши будут уходить ему в личку."
        )
    lines = ["👥 <b>Команда</b>\n"]
    lines.extend(f"• {escape(name)} — <code>{escape(chat_id)}</code>" for name, chat_id in aliases.items())
    return "\n".join(lines)


async def cancel_setup(message: Message, services: AppServices) -> None:
    """/cancel: выйти из мастера уведомлений."""
    context = await load_user_context(services.users, message.chat.id, message.from_user)
    if not services.wizard.is_active(context):
        await message.answer("Сейчас нечего отменять.")
        return
    await message.answer(await services.wizard.cancel(context))


def register_settings_handlers(dp: Dispatcher, services: AppServices) -> None:
    """Регистрирует команды настроек. Регистрировать ДО общего текстового хендлера."""

    @dp.message(Command("notify"))
    async def cmd_notify(message: Message) -> None:
        try:
            context = await load_user_context(services.users, message.chat.id, message.from_user)
            await message.answer(await services.wizard.start(context))
        except Exception:  # noqa: BLE001
            logger.exception("Ошибка /notify у %s", message.chat.id)
            await message.answer(APOLOGY)

    @dp.message(Command("cancel"))
    async def cmd_cancel(message: Message) -> None:
        try:
            await cancel_setup(message, services)
        except Exception:  # noqa: BLE001
            logger.exception("Ошибка /cancel у %s", message.chat.id)
            await message.answer(APOLOGY)

    @dp.message(Command("sheets"))
    async def cmd_sheets(message: Message, command: CommandObject) -> None:
        args = (command.args or "").strip()
        chat_id = str(message.chat.id)
        try:
            context = await load_user_context(services.users, chat_id, message.from_user)
            if not args:
                profile = context.profile
                state = "включено" if profile.sheets_enabled else "выключено"
                current = profile.spreadsheet_id or "общая таблица"
                await message.answer(
                    f"📊 Зеркало в Google Таблицу: {state}\nТаблица: {escape(current)}\n\n"
                    "<code>/sheets ссылка</code> — писать в свою таблицу\n"
                    "<code>/sheets off</code> — выключить"
                )
                return
            if args.lower() in ("off", "выкл", "нет"):
                await services.users.set_spreadsheet(chat_id, None, enabled=False)
                await message.answer("📊 Зеркало в Google Таблицу выключено.")
                return
            if args.lower() in ("on", "вкл", "да"):
                await services.users.set_spreadsheet(chat_id, None, enabled=True)
                await message.answer("📊 Зеркало в Google Таблицу включено.")
                return
            spreadsheet_id = extract_spreadsheet_id(args)
            if not spreadsheet_id:
                await message.answer("Не вижу ссылки на Google Таблицу. Пример: /sheets https://docs.google.com/spreadsheets/d/…")
                return
            await services.users.set_spreadsheet(chat_id, spreadsheet_id, enabled=True)
            await message.answer(
                "✅ Таблица подключена. Не забудь дать доступ редактора сервисному аккаунту бота."
            )
        except Exception:  # noqa: BLE001
            logger.exception("Ошибка /sheets у %s", chat_id)
            await message.answer(APOLOGY)

    @dp.message(Command("team"))
    async def cmd_team(message: Message, command: CommandObject) -> None:
        chat_id = str(message.chat.id)
        args = (command.args or "").strip()
        try:
            if args:
                parsed = parse_team_args(args)
                if parsed is None:
                    await message.answer("Формат: <code>/team Имя chat_id</code>")
                    return
                name, member_chat_id = parsed
                await services.users.add_alias(chat_id, name, member_chat_id)
                logger.info("В команду %s добавлен %s", chat_id, name)
            context = await load_user_context(services.users, chat_id, message.from_user)
            await message.answer(format_team(context.aliases))
        except Exception:  # noqa: BLE001
            logger.exception("Ошибка /team у %s", chat_id)
            await message.answer(APOLOGY)

    @dp.message(Command("recent"))
    async def cmd_recent(message: Message) -> None:
        try:
            rows = await services.records.list_recent(HOOKED_KINDS, limit=10, owner_chat_id=str(message.chat.id))
            await message.answer(format_recent(rows))
        except Exception:  # noqa: BLE001
            logger.exception("Ошибка /recent у %s", message.chat.id)
            await message.answer(APOLOGY)
