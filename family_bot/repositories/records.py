"""
Репозиторий записей (транзакции, задачи, идеи, напоминания).

ARCH: таблица выбирается по виду записи; всё чтение/запись идёт через TableStore.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from family_bot.models import KIND_TABLES, RECORD_KINDS, Record
from storage.database import Cmp

if TYPE_CHECKING:
    from storage.database import TableStore


@runtime_checkable
class RecordRepository(Protocol):
    """Интерфейс репозитория записей."""

    async def add(self, record: Record) -> None:
        ...

    async def list_records(
        self,
        kind: str,
        *,
        owner_chat_id: str | None = None,
        project: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        ...


def _read_row(row: dict[str, Any], kind: str) -> dict[str, Any]:
    """Строка таблицы в том же виде, что Record.to_dict (file вместо file_name)."""
    row["kind"] = kind
    if "file_name" in row:
        row["file"] = row.pop("file_name")
    return row


class TableRecordRepository(RecordRepository):
    """Репозиторий записей поверх TableStore."""

    def __init__(self, store: "TableStore") -> None:
        self._store = store

    async def add(self, record: Record) -> None:
        await self._store.insert(record.table, record.to_row())

    async def list_records(
        self,
        kind: str,
        *,
        owner_chat_id: str | None = None,
        project: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        if kind not in RECORD_KINDS:
            raise ValueError(f"Неизвестный тип записи: {kind!r}")
        where: dict[str, Any] = {}
        if owner_chat_id:
            where["owner_chat_id"] = owner_chat_id
        if project:
            where["project"] = project
        rows = await self._store.select(
            KIND_TABLES[kind],
            where,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [_read_row(row, kind) for row in rows]

    async def list_recent(
        self,
        kinds: tuple[str, ...],
        limit: int = 10,
        *,
        owner_chat_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Последние записи нескольких видов, общий порядок по created_at."""
        items: list[dict[str, Any]] = []
        for kind in kinds:
            items.extend(await self.list_records(kind, owner_chat_id=owner_chat_id, limit=limit))
        items.sort(key=lambda row: row.get("created_at") or "", reverse=True)
        return items[:limit]

    async def list_between(
        self,
        kind: str,
        start: date,
        end: date,
        *,
        owner_chat_id: str | None = None,
        project: str | None = None,
    ) -> list[dict[str, Any]]:
        """Записи вида за период по полю date (включительно)."""
        where: dict[str, Any] = {"date": Cmp(">=", start.isoformat())}
        if owner_chat_id:
            where["owner_chat_id"] = owner_chat_id
        if project:
            where["project"] = project
        rows = await self._store.select(KIND_TABLES[kind], where, order_by="date")
        return [_read_row(row, kind) for row in rows if (row.get("date") or "") <= end.isoformat()]

    async def get_tasks_for_date(self, for_date: date) -> list[dict[str, Any]]:
        return await self._store.select("tasks", {"date": for_date.isoformat()})

    async def get_due_reminders(self, now: datetime) -> list[dict[str, Any]]:
        return await self._store.select(
            "reminders",
            {"status": "pending", "remind_at": Cmp("<=", now.isoformat())},
            order_by="remind_at",
        )

    async def mark_reminder_sent(self, reminder_id: str) -> None:
        await self._store.update("reminders", {"status": "sent"}, {"id": reminder_id})
