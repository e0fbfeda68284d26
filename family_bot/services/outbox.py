"""
Выполнение побочных эффектов после сохранения записи.

Записи outbox сохраняются до выполнения; каждая доставка идёт в своём
try, ошибка одной не мешает остальным и не влияет на саму запись.
Упавшие и зависшие в pending доставки повторяет планировщик (retry_failed).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Protocol, Sequence, Union

from config import OUTBOX_MAX_ATTEMPTS
from family_bot.models import MIRROR, NOTIFY, OutboxEntry
from family_bot.repositories.outbox import OutboxRepository
from family_bot.services.mirror import SheetsClient, SheetsNotConfiguredError


logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    """То, что умеет отправить сообщение в чат (aiogram.Bot)."""

    async def send_message(self, chat_id: Union[int, str], text: str, **kwargs: Any) -> Any:
        ...


def chat_target(target: str) -> Union[int, str]:
    """chat_id числом, «@канал» строкой."""
    value = target.strip()
    if value.lstrip("-").isdigit():
        return int(value)
    return value


class PostCommitProcessor:
    def __init__(
        self,
        outbox_repo: OutboxRepository,
        sender: Optional[MessageSender],
        sheets: Optional[SheetsClient],
        *,
        max_attempts: int = OUTBOX_MAX_ATTEMPTS,
        pending_grace: timedelta = timedelta(minutes=1),
    ) -> None:
        self._outbox = outbox_repo
        self._sender = sender
        self._sheets = sheets
        self._max_attempts = max_attempts
        self._pending_grace = pending_grace

    async def enqueue(self, entries: Sequence[OutboxEntry]) -> bool:
        """Сохранить запланированные доставки. Ошибка хранилища не пробрасывается."""
        if not entries:
            return True
        try:
            await self._outbox.add_many(entries)
        except Exception:  # noqa: BLE001
            logger.exception("Не удалось сохранить outbox записи %s", entries[0].record_id)
            return False
        return True

    async def _deliver(self, entry: OutboxEntry) -> None:
        if entry.hook == NOTIFY:
            if self._sender is None:
                raise RuntimeError("Бот недоступен для отправки уведомлений")
            await self._sender.send_message(chat_target(entry.target), entry.payload["text"])
        elif entry.hook == MIRROR:
            if self._sheets is None or not self._sheets.configured:
                raise SheetsNotConfiguredError("Google Sheets не настроен")
            await self._sheets.append_row(
                entry.target,
                entry.payload["sheet"],
                entry.payload.get("headers", []),
                entry.payload["values"],
            )
        else:
            raise ValueError(f"Неизвестный вид доставки: {entry.hook!r}")

    async def process(self, entries: Sequence[OutboxEntry]) -> int:
        """Выполнить доставки по одной. Возвращает число успешных."""
        delivered = 0
        for entry in entries:
            entry.attempts += 1
            try:
                await self._deliver(entry)
            except Exception as e:  # noqa: BLE001
                entry.status = "failed"
                entry.last_error = str(e)[:500]
                logger.error(
                    "Доставка %s → %s (запись %s) не удалась, попытка %d: %s",
                    entry.hook,
                    entry.target,
                    entry.record_id,
                    entry.attempts,
                    e,
                )
            else:
                entry.status = "done"
                entry.last_error = None
                delivered += 1
                logger.info("Доставка %s → %s выполнена", entry.hook, entry.target)

            try:
                await self._outbox.mark(entry)
            except Exception:  # noqa: BLE001
                logger.exception("Не удалось обновить статус outbox %s", entry.id)
        return delivered

    async def retry_failed(self, now: Optional[datetime] = None) -> int:
        """
        Повторить упавшие доставки (запуск из планировщика).

        Подхватывает и pending старше pending_grace: их process так и не выполнил.
        """
        cutoff = (now or datetime.now()).astimezone() - self._pending_grace
        entries = await self._outbox.list_retryable(self._max_attempts, pending_before=cutoff)
        if not entries:
            return 0
        logger.info("Повтор %d доставок", len(entries))
        return await self.process(entries)
