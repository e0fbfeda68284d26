"""
Хендлер текстовых сообщений. ARCH: контекст пользователя → мастер настройки
или конвейер; ответ пользователю; затем побочные эффекты (уведомления, таблица).
"""
from __future__ import annotations

import logging

from aiogram import Dispatcher, F
from aiogram.types import Message

from family_bot.handlers.common import APOLOGY, load_user_context
from family_bot.keyboards import get_kind_keyboard
from family_bot.services.setup_wizard import STEP_KIND
from services.pipeline_service import AppServices

logger = logging.getLogger(__name__)


async def process_text(message: Message, text: str, services: AppServices) -> None:
    """Общий путь для текста и распознанного голоса. Ответ уходит до побочных эффектов."""
    context = await load_user_context(services.users, message.chat.id, message.from_user)

    if services.wizard.is_active(context):
        reply = await services.wizard.handle(text, context)
        markup = get_kind_keyboard() if services.wizard.current_step(context) == STEP_KIND else None
        await message.answer(reply, reply_markup=markup)
        return

    result = await services.pipeline.handle_text(text, context)
    try:
        await message.answer(result.reply)
    except Exception:  # noqa: BLE001
        if not result.saved:
            raise
        # запись сохранена: без APOLOGY, побочные эффекты выполняются
        logger.exception("Запись %s сохранена, но ответ в чат %s не отправлен", result.record.id, message.chat.id)
    await services.pipeline.run_post_commit(result)


async def _handle_text(message: Message, services: AppServices) -> None:
    text = (message.text or "").strip()
    # Команды (начинаются с /) обрабатываются своими хендлерами
    if not text or text.startswith("/"):
        return
    try:
        await process_text(message, text, services)
    except Exception:  # noqa: BLE001
        logger.exception("Ошибка обработки сообщения чата %s", message.chat.id)
        await message.answer(APOLOGY)


def register_message_handler(dp: Dispatcher, services: AppServices) -> None:
    """Регистрирует хендлер обычного текста. Регистрировать ПОСЛЕДНИМ."""

    @dp.message(F.text)
    async def on_text(message: Message) -> None:
        await _handle_text(message, services)
