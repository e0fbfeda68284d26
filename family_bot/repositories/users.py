"""
Репозиторий пользователей и их команды (алиасы «имя → chat_id»).

Состояние мастера настройки хранится в users.meta, а не в памяти процесса:
хендлер загружает UserContext в начале обработки и передаёт его дальше.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from family_bot.models import UserContext, UserProfile

if TYPE_CHECKING:
    from storage.database import TableStore


logger = logging.getLogger(__name__)


@runtime_checkable
class UsersRepository(Protocol):
    """Интерфейс репозитория пользователей."""

    async def get(self, chat_id: str) -> UserProfile | None:
        ...

    async def load_context(
        self,
        chat_id: str,
        *,
        username: str | None = None,
        first_name: str | None = None,
    ) -> UserContext:
        ...

    async def save_meta(self, chat_id: str, meta: dict[str, Any]) -> None:
        ...


def _load_meta(raw: Any) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Повреждённое поле users.meta: %r", raw)
        return {}
    return data if isinstance(data, dict) else {}


def _profile_from_row(row: dict[str, Any]) -> UserProfile:
    return UserProfile(
        chat_id=str(row["chat_id"]),
        username=row.get("username"),
        first_name=row.get("first_name"),
        tier=row.get("tier") or "free",
        spreadsheet_id=row.get("spreadsheet_id"),
        sheets_enabled=bool(row.get("sheets_enabled", 1)),
        meta=_load_meta(row.get("meta")),
    )


class TableUsersRepository(UsersRepository):
    """Пользователи и команда поверх TableStore."""

    def __init__(self, store: "TableStore") -> None:
        self._store = store

    async def get(self, chat_id: str) -> UserProfile | None:
        rows = await self._store.select("users", {"chat_id": str(chat_id)}, limit=1)
        return _profile_from_row(rows[0]) if rows else None

    async def get_or_create(
        self,
        chat_id: str,
        *,
        username: str | None = None,
        first_name: str | None = None,
    ) -> UserProfile:
        """Строка создаётся при первом сообщении; upsert держит одну строку на чат."""
        profile = await self.get(chat_id)
        if profile is not None:
            return profile
        await self._store.upsert(
            "users",
            {
                "chat_id": str(chat_id),
                "username": username,
                "first_name": first_name,
                "created_at": datetime.now().astimezone().isoformat(),
            },
            keys=("chat_id",),
        )
        return UserProfile(chat_id=str(chat_id), username=username, first_name=first_name)

    async def load_context(
        self,
        chat_id: str,
        *,
        username: str | None = None,
        first_name: str | None = None,
    ) -> UserContext:
        profile = await self.get_or_create(chat_id, username=username, first_name=first_name)
        aliases = await self.list_aliases(chat_id)
        return UserContext(profile=profile, aliases=aliases)

    async def save_meta(self, chat_id: str, meta: dict[str, Any]) -> None:
        await self._store.update(
            "users",
            {"meta": json.dumps(meta, ensure_ascii=False)},
            {"chat_id": str(chat_id)},
        )

    async def set_tier(self, chat_id: str, tier: str) -> None:
        await self._store.update("users", {"tier": tier}, {"chat_id": str(chat_id)})

    async def set_spreadsheet(self, chat_id: str, spreadsheet_id: str | None, *, enabled: bool = True) -> None:
        values: dict[str, Any] = {"sheets_enabled": int(enabled)}
        if spreadsheet_id is not None:
            values["spreadsheet_id"] = spreadsheet_id
        await self._store.update("users", values, {"chat_id": str(chat_id)})

    # --- Команда / алиасы ------------------------------------------------------

    async def list_aliases(self, owner_chat_id: str) -> dict[str, str]:
        rows = await self._store.select(
            "team_members",
            {"owner_chat_id": str(owner_chat_id)},
            order_by="name",
        )
        return {row["name"]: str(row["telegram_chat_id"]) for row in rows}

    async def add_alias(self, owner_chat_id: str, name: str, telegram_chat_id: str) -> None:
        await self._store.upsert(
            "team_members",
            {
                "owner_chat_id": str(owner_chat_id),
                "name": name.strip(),
                "telegram_chat_id": str(telegram_chat_id).strip(),
                "created_at": datetime.now().astimezone().isoformat(),
            },
            keys=("owner_chat_id", "name"),
        )
