"""
Рассылка уведомлений о новой записи.

По настройкам владельца для проекта записи собирает список адресатов
(личный чат, дополнительные чаты и каналы вида записи) и готовит по одной
доставке на адресата. Доставляет PostCommitProcessor — каждую отдельно,
так что ошибка одного адресата не мешает остальным.
"""

from __future__ import annotations

import logging

from family_bot.models import HOOKED_KINDS, NOTIFY, OutboxEntry, Record
from family_bot.repositories.settings import NotificationSettingsRepository
from family_bot.services.formatters import format_notification


logger = logging.getLogger(__name__)


class NotificationFanout:
    """Планирование уведомлений по NotificationSetting."""

    def __init__(self, settings_repo: NotificationSettingsRepository) -> None:
        self._settings = settings_repo

    async def targets(self, record: Record) -> list[str]:
        """Адресаты уведомления без повторов; нет настроек — пустой список."""
        if record.kind not in HOOKED_KINDS or not record.project:
            return []
        setting = await self._settings.get(record.owner_chat_id, record.project)
        if setting is None:
            return []

        targets: list[str] = []
        # Владелец уже получил ответ бота; лично уведомляем адресата записи (исполнителя)
        if setting.notify_personal and record.telegram_chat_id != record.owner_chat_id:
            targets.append(record.telegram_chat_id)
        targets.extend(setting.targets_for(record.kind))

        seen: set[str] = set()
        unique = []
        for target in targets:
            target = str(target).strip()
            if target and target not in seen and target != record.owner_chat_id:
                seen.add(target)
                unique.append(target)
        return unique

    async def plan(self, record: Record) -> list[OutboxEntry]:
        """Доставки уведомлений для записи. Ошибка чтения настроек — пустой план."""
        try:
            targets = await self.targets(record)
        except Exception:  # noqa: BLE001
            logger.exception("Не удалось прочитать настройки уведомлений для %s", record.id)
            return []
        if not targets:
            return []

        text = format_notification(record)
        logger.info("Уведомление о %s %s: %d адресатов", record.kind, record.id, len(targets))
        return [
            OutboxEntry(
                record_id=record.id,
                record_kind=record.kind,
                hook=NOTIFY,
                target=target,
                payload={"text": text},
            )
            for target in targets
        ]
