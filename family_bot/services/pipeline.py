"""
Обработка входящего сообщения целиком.

классификатор → нормализация → сохранение → план уведомлений и зеркала.
Побочные эффекты выполняются отдельно (run_post_commit), после того как
пользователь получил ответ.
"""

from __future__ import annotations

import logging
from datetime import datetime
from html import escape
from typing import Optional
from zoneinfo import ZoneInfo

from config import TIMEZONE
from family_bot.models import HOOKED_KINDS, DataReply, PipelineResult, Record, UserContext
from family_bot.services.classifier import CLARIFY, LlmClassifier
from family_bot.services.formatters import SAVE_FAILED, format_confirmation
from family_bot.services.gateway import PersistenceGateway
from family_bot.services.mirror import SheetsMirror
from family_bot.services.normalizer import normalize
from family_bot.services.notifications import NotificationFanout
from family_bot.services.outbox import PostCommitProcessor


logger = logging.getLogger(__name__)


class MessagePipeline:
    def __init__(
        self,
        classifier: LlmClassifier,
        gateway: PersistenceGateway,
        fanout: NotificationFanout,
        mirror: SheetsMirror,
        processor: PostCommitProcessor,
        *,
        timezone: str = TIMEZONE,
    ) -> None:
        self._classifier = classifier
        self._gateway = gateway
        self._fanout = fanout
        self._mirror = mirror
        self._processor = processor
        self._tz = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self._tz)

    async def handle_text(
        self,
        text: str,
        context: UserContext,
        now: Optional[datetime] = None,
    ) -> PipelineResult:
        """Сообщение пользователя → ответ и (если это запись) сохранение."""
        now = now or self.now()
        result = await self._classifier.classify(
            text,
            context.chat_id,
            today=now.date(),
            persons=list(context.aliases),
        )
        if not isinstance(result, DataReply):
            # Ответ модели уходит в HTML-режиме бота
            return PipelineResult(reply=escape(result.content, quote=False))

        data = normalize(result.data, context.chat_id, aliases=context.aliases, now=now)
        try:
            record = Record.from_payload(data, owner_chat_id=context.chat_id)
        except ValueError as e:
            logger.warning("Запись от ИИ отклонена: %s", e)
            return PipelineResult(reply=CLARIFY)

        return await self.submit(record)

    async def submit(self, record: Record) -> PipelineResult:
        """Сохранить запись и запланировать уведомления и зеркало."""
        saved = await self._gateway.save(record)
        if not saved:
            return PipelineResult(reply=SAVE_FAILED, record=record, saved=False)

        entries = []
        if record.kind in HOOKED_KINDS:
            entries.extend(await self._fanout.plan(record))
            mirror_entry = await self._mirror.plan(record)
            if mirror_entry is not None:
                entries.append(mirror_entry)
            await self._processor.enqueue(entries)

        return PipelineResult(
            reply=format_confirmation(record),
            record=record,
            saved=True,
            post_commit=entries,
        )

    async def run_post_commit(self, result: PipelineResult) -> int:
        if not result.post_commit:
            return 0
        return await self._processor.process(result.post_commit)
