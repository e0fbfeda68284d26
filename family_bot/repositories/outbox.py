"""
Репозиторий outbox: побочные эффекты после сохранения записи.

Каждая строка — одна доставка (уведомление в чат или строка в таблицу).
Статусы: pending → done | failed; failed и зависшие pending повторяются планировщиком.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

from family_bot.models import OutboxEntry
from storage.database import Cmp

if TYPE_CHECKING:
    from storage.database import TableStore


@runtime_checkable
class OutboxRepository(Protocol):
    """Интерфейс репозитория outbox."""

    async def add_many(self, entries: Sequence[OutboxEntry]) -> None:
        ...

    async def mark(self, entry: OutboxEntry) -> None:
        ...

    async def list_retryable(
        self,
        max_attempts: int,
        limit: int = 100,
        *,
        pending_before: datetime | None = None,
    ) -> list[OutboxEntry]:
        ...


def _entry_from_row(row: dict[str, Any]) -> OutboxEntry:
    return OutboxEntry(
        id=row["id"],
        record_id=row["record_id"],
        record_kind=row["record_kind"],
        hook=row["hook"],
        target=row["target"],
        payload=json.loads(row["payload"] or "{}"),
        status=row.get("status") or "pending",
        attempts=int(row.get("attempts") or 0),
        last_error=row.get("last_error"),
    )


class TableOutboxRepository(OutboxRepository):
    """Outbox поверх TableStore."""

    def __init__(self, store: "TableStore") -> None:
        self._store = store

    async def add_many(self, entries: Sequence[OutboxEntry]) -> None:
        now = datetime.now().astimezone().isoformat()
        await self._store.insert_many(
            "outbox",
            [
                {
                    "id": e.id,
                    "record_id": e.record_id,
                    "record_kind": e.record_kind,
                    "hook": e.hook,
                    "target": e.target,
                    "payload": json.dumps(e.payload, ensure_ascii=False),
                    "status": e.status,
                    "attempts": e.attempts,
                    "created_at": now,
                }
                for e in entries
            ],
        )

    async def mark(self, entry: OutboxEntry) -> None:
        await self._store.update(
            "outbox",
            {
                "status": entry.status,
                "attempts": entry.attempts,
                "last_error": entry.last_error,
                "updated_at": datetime.now().astimezone().isoformat(),
            },
            {"id": entry.id},
        )

    async def list_retryable(
        self,
        max_attempts: int,
        limit: int = 100,
        *,
        pending_before: datetime | None = None,
    ) -> list[OutboxEntry]:
        """
        Упавшие доставки с попытками меньше max_attempts.

        pending_before: ещё и pending, созданные раньше этого момента
        (процесс упал между enqueue и process).
        """
        rows = await self._store.select(
            "outbox",
            {"status": "failed", "attempts": Cmp("<", max_attempts)},
            order_by="created_at",
            limit=limit,
        )
        if pending_before is not None and len(rows) < limit:
            rows += await self._store.select(
                "outbox",
                {"status": "pending", "created_at": Cmp("<", pending_before.isoformat())},
                order_by="created_at",
                limit=limit - len(rows),
            )
        return [_entry_from_row(row) for row in rows]

    async def list_by_record(self, record_id: str) -> list[OutboxEntry]:
        rows = await self._store.select("outbox", {"record_id": record_id}, order_by="created_at")
        return [_entry_from_row(row) for row in rows]
