"""
Единая точка доступа к БД: провайдер соединения и табличное хранилище.

Handlers и services не пишут SQL — они работают с репозиториями, а репозитории
обращаются к TableStore по имени таблицы и словарям «колонка → значение».
Замена SQLite на PostgreSQL сводится к новой реализации провайдера и
TableStore без изменения handlers/services.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncContextManager, Iterable, Mapping, Protocol, Sequence

import aiosqlite

from storage.schema import TABLE_COLUMNS


class DatabaseProvider(Protocol):
    """
    Провайдер соединения с БД.

    Используется при старте приложения; хранилище получает провайдер
    и вызывает connection() внутри методов (insert, select, update).
    """

    def connection(self) -> AsyncContextManager[Any]:
        """Возвращает асинхронный контекст-менеджер соединения."""
        ...


class AiosqliteDatabaseProvider:
    """Провайдер соединений SQLite через aiosqlite."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    @asynccontextmanager
    async def connection(self) -> AsyncContextManager[aiosqlite.Connection]:
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self._db_path) as conn:
            conn.row_factory = aiosqlite.Row
            yield conn


@dataclass(frozen=True)
class Cmp:
    """Условие сравнения для select/update: {"remind_at": Cmp("<=", now)}."""

    op: str
    value: Any


_ALLOWED_OPS = {"=", "!=", "<", "<=", ">", ">="}


class TableStore(Protocol):
    """Параметризованный доступ к таблицам: имя таблицы + словари значений."""

    async def insert(self, table: str, values: Mapping[str, Any]) -> None: ...

    async def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None: ...

    async def upsert(self, table: str, values: Mapping[str, Any], keys: Sequence[str]) -> None: ...

    async def select(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    async def update(self, table: str, values: Mapping[str, Any], where: Mapping[str, Any]) -> int: ...


class SqliteTableStore:
    """
    TableStore поверх DatabaseProvider.

    Имена таблиц и колонок сверяются со схемой (storage.schema.TABLE_COLUMNS),
    значения всегда уходят параметрами.
    """

    def __init__(self, provider: DatabaseProvider) -> None:
        self._provider = provider

    @staticmethod
    def _check(table: str, columns: Iterable[str]) -> None:
        known = TABLE_COLUMNS.get(table)
        if known is None:
            raise ValueError(f"Неизвестная таблица: {table}")
        for column in columns:
            if column not in known:
                raise ValueError(f"Неизвестная колонка {table}.{column}")

    @staticmethod
    def _where_clause(where: Mapping[str, Any] | None) -> tuple[str, list[Any]]:
        if not where:
            return "", []
        parts: list[str] = []
        params: list[Any] = []
        for column, value in where.items():
            if isinstance(value, Cmp):
                if value.op not in _ALLOWED_OPS:
                    raise ValueError(f"Недопустимый оператор: {value.op}")
                parts.append(f"{column} {value.op} ?")
                params.append(value.value)
            elif value is None:
                parts.append(f"{column} IS NULL")
            else:
                parts.append(f"{column} = ?")
                params.append(value)
        return " WHERE " + " AND ".join(parts), params

    async def insert(self, table: str, values: Mapping[str, Any]) -> None:
        await self.insert_many(table, [values])

    async def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None:
        if not rows:
            return
        async with self._provider.connection() as db:
            for values in rows:
                self._check(table, values.keys())
                columns = ", ".join(values.keys())
                placeholders = ", ".join("?" for _ in values)
                await db.execute(
                    f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                    tuple(values.values()),
                )
            await db.commit()

    async def upsert(self, table: str, values: Mapping[str, Any], keys: Sequence[str]) -> None:
        self._check(table, list(values.keys()) + list(keys))
        columns = ", ".join(values.keys())
        placeholders = ", ".join("?" for _ in values)
        updates = ", ".join(f"{c} = excluded.{c}" for c in values if c not in keys)
        conflict = ", ".join(keys)
        sql = f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) ON CONFLICT({conflict}) "
        sql += f"DO UPDATE SET {updates}" if updates else "DO NOTHING"
        async with self._provider.connection() as db:
            await db.execute(sql, tuple(values.values()))
            await db.commit()

    async def select(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self._check(table, list(where or {}) + ([order_by] if order_by else []))
        clause, params = self._where_clause(where)
        sql = f"SELECT * FROM {table}{clause}"
        if order_by:
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        async with self._provider.connection() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def update(self, table: str, values: Mapping[str, Any], where: Mapping[str, Any]) -> int:
        if not where:
            raise ValueError("update без условия запрещён")
        self._check(table, list(values) + list(where))
        assignments = ", ".join(f"{c} = ?" for c in values)
        clause, params = self._where_clause(where)
        async with self._provider.connection() as db:
            cursor = await db.execute(
                f"UPDATE {table} SET {assignments}{clause}",
                [*values.values(), *params],
            )
            await db.commit()
            return cursor.rowcount
