from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Union


TRANSACTION = "transaction"
TASK = "task"
IDEA = "idea"
REMINDER = "reminder"

RECORD_KINDS = (TRANSACTION, TASK, IDEA, REMINDER)

# Виды записей, после сохранения которых идут уведомления и зеркало в таблицу
HOOKED_KINDS = (TRANSACTION, TASK, IDEA)

KIND_TABLES = {
    TRANSACTION: "transactions",
    TASK: "tasks",
    IDEA: "ideas",
    REMINDER: "reminders",
}


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class Record:
    """
    Одна запись пользователя: транзакция, задача, идея или напоминание.

    telegram_chat_id — чат-адресат (для задачи может быть переназначен на
    исполнителя), owner_chat_id — чат, из которого запись пришла.
    amount хранится строкой со знаком: «+2000» доход, «-500» расход.
    """

    kind: str
    owner_chat_id: str
    telegram_chat_id: str
    description: str = ""
    project: str | None = None
    amount: str | None = None
    currency: str | None = None
    date: str | None = None
    money_source: str | None = None
    person: str | None = None
    status: str | None = None
    priority: str | None = None
    due_date: str | None = None
    repeat_type: str | None = None
    repeat_until: str | None = None
    remind_at: str | None = None
    link: str | None = None
    file: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=lambda: datetime.now().astimezone().isoformat())

    @property
    def table(self) -> str:
        return KIND_TABLES[self.kind]

    @property
    def is_income(self) -> bool:
        return (self.amount or "").startswith("+")

    @property
    def is_expense(self) -> bool:
        return (self.amount or "").startswith("-")

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], owner_chat_id: str) -> "Record":
        """Собирает запись из нормализованного JSON классификатора (camelCase ключи)."""
        kind = str(data.get("type") or "").strip().lower()
        if kind not in RECORD_KINDS:
            raise ValueError(f"Неизвестный тип записи: {kind!r}")
        return cls(
            kind=kind,
            owner_chat_id=str(owner_chat_id),
            telegram_chat_id=str(data.get("telegramChatId") or owner_chat_id),
            description=str(data.get("description") or "").strip(),
            project=_str_or_none(data.get("project")),
            amount=_str_or_none(data.get("amount")),
            currency=_str_or_none(data.get("currency")),
            date=_str_or_none(data.get("date")),
            money_source=_str_or_none(data.get("money_source") or data.get("budgetFrom")),
            person=_str_or_none(data.get("person")),
            status=_str_or_none(data.get("status")),
            priority=_str_or_none(data.get("priority")),
            due_date=_str_or_none(data.get("dueDate") or data.get("due_date")),
            repeat_type=_str_or_none(data.get("repeatType")),
            repeat_until=_str_or_none(data.get("repeatUntil")),
            remind_at=_str_or_none(data.get("remindAt")),
            link=_str_or_none(data.get("link")),
            file=_str_or_none(data.get("file")),
        )

    def to_row(self) -> dict[str, Any]:
        """Строка для таблицы своего вида (только колонки этой таблицы)."""
        row: dict[str, Any] = {
            "id": self.id,
            "project": self.project,
            "description": self.description,
            "telegram_chat_id": self.telegram_chat_id,
            "owner_chat_id": self.owner_chat_id,
            "created_at": self.created_at,
        }
        if self.kind == TRANSACTION:
            row.update(
                amount=self.amount,
                currency=self.currency,
                money_source=self.money_source,
                date=self.date,
            )
        elif self.kind == TASK:
            row.update(
                person=self.person,
                status=self.status or "new",
                priority=self.priority,
                date=self.date,
                due_date=self.due_date,
                repeat_type=self.repeat_type,
                repeat_until=self.repeat_until,
            )
        elif self.kind == IDEA:
            row.update(link=self.link, file_name=self.file, date=self.date)
        elif self.kind == REMINDER:
            row.update(remind_at=self.remind_at, status="pending", date=self.date)
        return row

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "project": self.project,
            "description": self.description,
            "amount": self.amount,
            "currency": self.currency,
            "date": self.date,
            "money_source": self.money_source,
            "person": self.person,
            "status": self.status,
            "priority": self.priority,
            "due_date": self.due_date,
            "repeat_type": self.repeat_type,
            "repeat_until": self.repeat_until,
            "remind_at": self.remind_at,
            "link": self.link,
            "file": self.file,
            "telegram_chat_id": self.telegram_chat_id,
            "owner_chat_id": self.owner_chat_id,
            "created_at": self.created_at,
        }


@dataclass
class NotificationSetting:
    """
    Настройки уведомлений владельца для одного проекта.

    Для каждого из видов transaction/task/idea — дополнительные чаты и каналы.
    """

    owner_chat_id: str
    project: str
    notify_personal: bool = True
    chats: dict[str, list[str]] = field(default_factory=dict)
    channels: dict[str, list[str]] = field(default_factory=dict)

    def targets_for(self, kind: str) -> list[str]:
        return [*self.chats.get(kind, []), *self.channels.get(kind, [])]

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner_chat_id": self.owner_chat_id,
            "project": self.project,
            "notify_personal": self.notify_personal,
            "chats": {kind: list(self.chats.get(kind, [])) for kind in HOOKED_KINDS},
            "channels": {kind: list(self.channels.get(kind, [])) for kind in HOOKED_KINDS},
        }


@dataclass
class UserProfile:
    """Пользователь бота: одна строка на chat_id."""

    chat_id: str
    username: str | None = None
    first_name: str | None = None
    tier: str = "free"
    spreadsheet_id: str | None = None
    sheets_enabled: bool = True
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def wizard(self) -> dict[str, Any] | None:
        """Состояние мастера настройки (шаг и собранные ответы) или None."""
        state = self.meta.get("wizard")
        return state if isinstance(state, dict) else None


@dataclass
class UserContext:
    """
    Состояние пользователя на время обработки одного сообщения.

    Загружается из БД в начале хендлера и передаётся в pipeline аргументом:
    профиль (тариф, мастер настройки) и алиасы людей «имя → chat_id».
    """

    profile: UserProfile
    aliases: dict[str, str] = field(default_factory=dict)

    @property
    def chat_id(self) -> str:
        return self.profile.chat_id


@dataclass
class OutboxEntry:
    """Побочный эффект после сохранения записи: уведомление или строка в таблице."""

    record_id: str
    record_kind: str
    hook: str  # notify | mirror
    target: str
    payload: dict[str, Any]
    status: str = "pending"
    attempts: int = 0
    last_error: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


NOTIFY = "notify"
MIRROR = "mirror"


@dataclass(frozen=True)
class TextReply:
    """Ответ классификатора обычным текстом."""

    content: str
    type: str = "text"


@dataclass(frozen=True)
class DataReply:
    """Ответ классификатора структурированной записью (распарсенный JSON)."""

    data: dict[str, Any]
    type: str = "data"


ClassifierResult = Union[TextReply, DataReply]


@dataclass
class PipelineResult:
    """Итог обработки сообщения: что ответить и какие побочные эффекты выполнить."""

    reply: str
    record: Record | None = None
    saved: bool = False
    post_commit: list[OutboxEntry] = field(default_factory=list)


__all__ = [
    "ClassifierResult",
    "DataReply",
    "HOOKED_KINDS",
    "IDEA",
    "KIND_TABLES",
    "MIRROR",
    "NOTIFY",
    "NotificationSetting",
    "OutboxEntry",
    "PipelineResult",
    "RECORD_KINDS",
    "REMINDER",
    "Record",
    "TASK",
    "TRANSACTION",
    "TextReply",
    "UserContext",
    "UserProfile",
]
