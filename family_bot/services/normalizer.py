"""
Нормализация записи от классификатора.

Заполняет telegramChatId и date, переназначает задачу на исполнителя по
алиасам команды, выводит повторение задачи и время напоминания из текста.
Разбор текста — чистые функции infer_recurrence / infer_remind_at.
"""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional

from family_bot.models import REMINDER, TASK, TRANSACTION


logger = logging.getLogger(__name__)

DAILY = "ежедневно"
WEEKLY = "еженедельно"
MONTHLY = "ежемесячно"

_DAILY_RE = re.compile(r"ежедневно|каждый день|до \d+ числа")
_WEEKLY_RE = re.compile(r"еженедельно|каждую неделю|по \w+ам")
_MONTHLY_RE = re.compile(r"ежемесячно|каждый месяц")
_UNTIL_DAY_RE = re.compile(r"до (\d{1,2}) числа")
_IN_HOURS_RE = re.compile(r"через (\d+) (?:час|часа|часов)\b")
_IN_MINUTES_RE = re.compile(r"через (\d+) (?:минуту|минуты|минут)\b")
_UNSIGNED_AMOUNT_RE = re.compile(r"^\d[\d ]*(?:[.,]\d+)?$")


@dataclass(frozen=True)
class Recurrence:
    repeat_type: str
    repeat_until: Optional[date] = None


def _until_date(day: int, today: date) -> date:
    """День N текущего месяца; если он уже прошёл — следующего. Обрезается по длине месяца."""
    year, month = today.year, today.month
    last = calendar.monthrange(year, month)[1]
    candidate = date(year, month, min(day, last))
    if candidate < today:
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        last = calendar.monthrange(year, month)[1]
        candidate = date(year, month, min(day, last))
    return candidate


def infer_recurrence(description: str, today: date) -> Optional[Recurrence]:
    """Повторение задачи по тексту: «ежедневно», «по вторникам», «до 15 числа»…"""
    text = (description or "").lower()

    until = _UNTIL_DAY_RE.search(text)
    if until:
        day = int(until.group(1))
        if 1 <= day <= 31:
            return Recurrence(DAILY, _until_date(day, today))

    if _DAILY_RE.search(text):
        return Recurrence(DAILY)
    if _WEEKLY_RE.search(text):
        return Recurrence(WEEKLY)
    if _MONTHLY_RE.search(text):
        return Recurrence(MONTHLY)
    return None


def infer_remind_at(description: str, now: datetime) -> Optional[datetime]:
    """Абсолютное время напоминания из «через N часов» / «через N минут»."""
    text = (description or "").lower()
    hours = _IN_HOURS_RE.search(text)
    if hours:
        return now + timedelta(hours=int(hours.group(1)))
    minutes = _IN_MINUTES_RE.search(text)
    if minutes:
        return now + timedelta(minutes=int(minutes.group(1)))
    return None


def _coerce_remind_at(value: Any, now: datetime) -> Optional[str]:
    """Привести remindAt от модели к ISO в часовом поясе now (для сравнения строк в БД)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Не удалось разобрать remindAt: %r", value)
        return None
    if parsed.tzinfo is None and now.tzinfo is not None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    elif now.tzinfo is not None:
        parsed = parsed.astimezone(now.tzinfo)
    return parsed.isoformat()


def _coerce_amount(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return f"+{value}" if value > 0 else str(value)
    text = str(value).strip()
    # «500» без знака считается доходом, как и число 500
    if _UNSIGNED_AMOUNT_RE.match(text):
        return f"+{text}"
    return text


def normalize(
    data: Mapping[str, Any],
    chat_id: str,
    *,
    aliases: Mapping[str, str],
    now: datetime,
) -> dict[str, Any]:
    """
    Нормализовать запись классификатора. Возвращает новый dict, вход не меняет.

    aliases — команда владельца «имя → chat_id» (из UserContext).
    """
    result = dict(data)
    kind = str(result.get("type") or "").lower()

    if not result.get("telegramChatId"):
        result["telegramChatId"] = str(chat_id)
    else:
        result["telegramChatId"] = str(result["telegramChatId"])

    if not result.get("date"):
        result["date"] = now.date().isoformat()

    if "money_source" not in result and result.get("budgetFrom"):
        result["money_source"] = result["budgetFrom"]

    if kind == TRANSACTION:
        result["amount"] = _coerce_amount(result.get("amount"))

    if kind == TASK and result.get("person"):
        person_chat = aliases.get(str(result["person"]).strip())
        if person_chat and person_chat != result["telegramChatId"]:
            logger.info("Задача переназначена на %s", result["person"])
            result["telegramChatId"] = person_chat

    description = str(result.get("description") or "")

    if kind == TASK and description:
        recurrence = infer_recurrence(description, now.date())
        if recurrence:
            result["repeatType"] = recurrence.repeat_type
            if recurrence.repeat_until:
                result["repeatUntil"] = recurrence.repeat_until.isoformat()

    if kind == REMINDER:
        remind_at = infer_remind_at(description, now) if description else None
        if remind_at:
            result["remindAt"] = remind_at.isoformat()
        else:
            result["remindAt"] = _coerce_remind_at(result.get("remindAt"), now)

    return result
