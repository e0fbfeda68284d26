from __future__ import annotations

import logging
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from config import TIMEZONE
from family_bot.repositories.records import TableRecordRepository
from family_bot.services.formatters import PRIORITY_ICONS
from family_bot.services.outbox import MessageSender, chat_target


logger = logging.getLogger(__name__)


def greeting(hour: int) -> tuple[str, str]:
    """Иконка и приветствие по часу дня."""
    if 6 <= hour < 12:
        return "🌅", "Доброе утро"
    if 12 <= hour < 17:
        return "😊", "Добрый день"
    if 17 <= hour < 22:
        return "🌆", "Добрый вечер"
    return "🌙", "Доброй ночи"


def format_digest(tasks: List[Dict[str, Any]], hour: int) -> str:
    icon, text = greeting(hour)
    message = f"{icon} {text}!\n\n🎯 У тебя на сегодня задач: {len(tasks)}\n\n"
    for index, task in enumerate(tasks, start=1):
        mark = PRIORITY_ICONS.get(task.get("priority") or "", "")
        prefix = f"{mark} " if mark else ""
        message += f"{index}. {prefix}{escape(task.get('description') or '')}\n"
    message += "\n💪 Удачного дня!"
    return message


class RemindersService:
    """Напоминания: разовые (reminders) и дайджест задач на сегодня."""

    def __init__(
        self,
        bot: MessageSender,
        records_repo: TableRecordRepository,
        *,
        timezone: str = TIMEZONE,
    ) -> None:
        self._bot = bot
        self._records = records_repo
        self._tz = ZoneInfo(timezone)

    async def send_due_reminders(self, now: Optional[datetime] = None) -> int:
        """Отправить наступившие напоминания (запуск каждую минуту)."""
        now = now or datetime.now(self._tz)
        reminders = await self._records.get_due_reminders(now)
        sent = 0
        for reminder in reminders:
            try:
                text = f"⏰ <b>Напоминание</b>\n\n{escape(reminder.get('description') or '')}"
                await self._bot.send_message(chat_target(str(reminder["telegram_chat_id"])), text)
                await self._records.mark_reminder_sent(reminder["id"])
                sent += 1
                logger.info("Напоминание %s отправлено %s", reminder["id"], reminder["telegram_chat_id"])
            except Exception as e:  # noqa: BLE001
                logger.error("Ошибка напоминания %s: %s", reminder.get("id"), e)
        return sent

    async def send_daily_digest(self, now: Optional[datetime] = None) -> int:
        """Задачи на сегодня каждому адресату (7:00, 13:00, 19:00)."""
        now = now or datetime.now(self._tz)
        logger.info("Отправка дайджеста задач...")
        tasks = await self._records.get_tasks_for_date(now.date())

        # Группируем по чату-адресату
        chat_tasks: Dict[str, List[Dict[str, Any]]] = {}
        for task in tasks:
            chat_id = task.get("telegram_chat_id")
            if chat_id:
                chat_tasks.setdefault(str(chat_id), []).append(task)

        sent = 0
        for chat_id, tasks_list in chat_tasks.items():
            try:
                await self._bot.send_message(chat_target(chat_id), format_digest(tasks_list, now.hour))
                sent += 1
                logger.info("Дайджест отправлен %s (%d задач)", chat_id, len(tasks_list))
            except Exception as e:  # noqa: BLE001
                logger.error("Ошибка отправки дайджеста %s: %s", chat_id, e)
        return sent
