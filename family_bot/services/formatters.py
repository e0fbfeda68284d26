"""Тексты для пользователя: подтверждение сохранения и уведомления (HTML)."""

from __future__ import annotations

from datetime import datetime
from html import escape

from family_bot.models import IDEA, REMINDER, TASK, TRANSACTION, Record

SAVE_FAILED = "❌ Не получилось сохранить запись. Попробуй ещё раз чуть позже."

KIND_TITLES = {
    TRANSACTION: "транзакции",
    TASK: "задачи",
    IDEA: "идеи",
    REMINDER: "напоминания",
}

PRIORITY_ICONS = {"high": "🔴", "medium": "🟡", "low": "🟢"}


def _line(label: str, value: str | None) -> str:
    return f"{label}: {escape(value)}\n" if value else ""


def format_remind_at(value: str | None) -> str:
    if not value:
        return "не указано"
    try:
        return datetime.fromisoformat(value).strftime("%d.%m.%Y %H:%M")
    except ValueError:
        return value


def format_confirmation(record: Record) -> str:
    """Ответ пользователю после успешного сохранения."""
    if record.kind == REMINDER:
        return (
            "✅ Напоминание установлено:\n"
            f"{escape(record.description)}\n"
            f"Время: {escape(format_remind_at(record.remind_at))}"
        )

    project = escape(record.project or "без проекта")
    text = f"✅ Добавлено в {KIND_TITLES[record.kind]} для проекта {project}:\n{escape(record.description)}\n"
    if record.kind == TRANSACTION:
        text += _line("Сумма", " ".join(filter(None, [record.amount, record.currency])))
        text += _line("Источник", record.money_source)
    elif record.kind == TASK:
        text += _line("Ответственный", record.person)
        text += _line("Повтор", record.repeat_type)
        text += _line("До", record.repeat_until)
    elif record.kind == IDEA:
        text += _line("Ссылка", record.link)
    text += _line("Дата", record.date)
    return text.rstrip()


def format_notification(record: Record) -> str:
    """Уведомление для дополнительных чатов и каналов."""
    project = escape(record.project or "без проекта")
    description = escape(record.description)

    if record.kind == TRANSACTION:
        icon = "💰" if record.is_income else "💸"
        text = f"{icon} <b>Новая транзакция</b> · {project}\n\n{description}\n"
        text += _line("Сумма", " ".join(filter(None, [record.amount, record.currency])))
        text += _line("Источник", record.money_source)
    elif record.kind == TASK:
        icon = PRIORITY_ICONS.get(record.priority or "", "📋")
        text = f"{icon} <b>Новая задача</b> · {project}\n\n{description}\n"
        text += _line("Ответственный", record.person)
        text += _line("Срок", record.due_date)
        text += _line("Повтор", record.repeat_type)
        text += _line("До", record.repeat_until)
    elif record.kind == IDEA:
        text = f"💡 <b>Новая идея</b> · {project}\n\n{description}\n"
        text += _line("Ссылка", record.link)
        text += _line("Файл", record.file)
    else:
        text = f"⏰ <b>Напоминание</b>\n\n{description}\n"
    text += _line("Дата", record.date)
    return text.rstrip()


KIND_ICONS = {TRANSACTION: "💰", TASK: "📋", IDEA: "💡", REMINDER: "⏰"}


def format_recent(rows: list[dict]) -> str:
    """Список последних записей для /recent и кнопки меню."""
    if not rows:
        return "Пока нет ни одной записи. Напиши, например: «потратил 500 на бензин для Cars»."
    lines = ["🗂 <b>Последние записи</b>\n"]
    for row in rows:
        icon = KIND_ICONS.get(row.get("kind", ""), "•")
        amount = f" {escape(row['amount'])}" if row.get("amount") else ""
        project = f" [{escape(row['project'])}]" if row.get("project") else ""
        lines.append(f"{icon}{amount} {escape(row.get('description') or '')}{project}")
    return "\n".join(lines)
