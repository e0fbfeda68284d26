from __future__ import annotations

import logging

from family_bot.models import IDEA, REMINDER, TASK, TRANSACTION, Record
from family_bot.repositories.records import RecordRepository


logger = logging.getLogger(__name__)


class PersistenceGateway:
    """
    Сохранение записей по видам.

    Каждый save_* вставляет одну строку в таблицу своего вида и возвращает
    True/False. Ошибка хранилища логируется, повторов нет.
    """

    def __init__(self, records_repo: RecordRepository) -> None:
        self._records = records_repo

    async def _insert(self, record: Record, expected_kind: str) -> bool:
        if record.kind != expected_kind:
            logger.error("Запись %s передана в сохранение %s", record.kind, expected_kind)
            return False
        try:
            await self._records.add(record)
        except Exception:  # noqa: BLE001
            logger.exception("Ошибка сохранения %s %s", record.kind, record.id)
            return False
        logger.info(
            "Сохранено: %s %s (проект %s, чат %s)",
            record.kind,
            record.id,
            record.project,
            record.owner_chat_id,
        )
        return True

    async def save_transaction(self, record: Record) -> bool:
        return await self._insert(record, TRANSACTION)

    async def save_task(self, record: Record) -> bool:
        return await self._insert(record, TASK)

    async def save_idea(self, record: Record) -> bool:
        return await self._insert(record, IDEA)

    async def save_reminder(self, record: Record) -> bool:
        return await self._insert(record, REMINDER)

    async def save(self, record: Record) -> bool:
        savers = {
            TRANSACTION: self.save_transaction,
            TASK: self.save_task,
            IDEA: self.save_idea,
            REMINDER: self.save_reminder,
        }
        saver = savers.get(record.kind)
        if saver is None:
            logger.error("Неизвестный вид записи: %s", record.kind)
            return False
        return await saver(record)
