"""
Репозиторий настроек уведомлений (владелец + проект).

Списки чатов и каналов лежат в JSON-колонках `<kind>_chats` / `<kind>_channels`.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from family_bot.models import HOOKED_KINDS, NotificationSetting

if TYPE_CHECKING:
    from storage.database import TableStore


logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationSettingsRepository(Protocol):
    """Интерфейс репозитория настроек уведомлений."""

    async def get(self, owner_chat_id: str, project: str) -> NotificationSetting | None:
        ...

    async def save(self, setting: NotificationSetting) -> None:
        ...


def _load_list(raw: Any) -> list[str]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Повреждённый список целей уведомлений: %r", raw)
        return []
    return [str(x) for x in data] if isinstance(data, list) else []


class TableNotificationSettingsRepository(NotificationSettingsRepository):
    """Настройки уведомлений поверх TableStore."""

    def __init__(self, store: "TableStore") -> None:
        self._store = store

    async def get(self, owner_chat_id: str, project: str) -> NotificationSetting | None:
        rows = await self._store.select(
            "notification_settings",
            {"owner_chat_id": str(owner_chat_id), "project": project},
            limit=1,
        )
        if not rows:
            return None
        row = rows[0]
        return NotificationSetting(
            owner_chat_id=str(row["owner_chat_id"]),
            project=row["project"],
            notify_personal=bool(row.get("notify_personal")),
            chats={kind: _load_list(row.get(f"{kind}_chats")) for kind in HOOKED_KINDS},
            channels={kind: _load_list(row.get(f"{kind}_channels")) for kind in HOOKED_KINDS},
        )

    async def list_for_owner(self, owner_chat_id: str) -> list[NotificationSetting]:
        rows = await self._store.select(
            "notification_settings",
            {"owner_chat_id": str(owner_chat_id)},
            order_by="project",
        )
        settings = []
        for row in rows:
            setting = await self.get(owner_chat_id, row["project"])
            if setting is not None:
                settings.append(setting)
        return settings

    async def save(self, setting: NotificationSetting) -> None:
        values: dict[str, Any] = {
            "owner_chat_id": str(setting.owner_chat_id),
            "project": setting.project,
            "notify_personal": int(setting.notify_personal),
            "updated_at": datetime.now().astimezone().isoformat(),
        }
        for kind in HOOKED_KINDS:
            values[f"{kind}_chats"] = json.dumps(setting.chats.get(kind, []), ensure_ascii=False)
            values[f"{kind}_channels"] = json.dumps(setting.channels.get(kind, []), ensure_ascii=False)
        await self._store.upsert("notification_settings", values, keys=("owner_chat_id", "project"))
