"""
Голосовые сообщения: Whisper → текст → тот же путь, что у обычного текста.
"""
from __future__ import annotations

import logging
from html import escape

from aiogram import Bot, Dispatcher, F
from aiogram.types import Message

from family_bot.handlers.common import APOLOGY
from family_bot.handlers.messages import process_text
from services.pipeline_service import AppServices

logger = logging.getLogger(__name__)

VOICE_UNAVAILABLE = "🎙 Голосовые пока не поддерживаются — напиши, пожалуйста, текстом."
VOICE_EMPTY = "🎙 Не расслышал. Попробуй ещё раз или напиши текстом."


async def handle_voice(message: Message, bot: Bot, services: AppServices) -> None:
    if not services.llm.can_transcribe:
        await message.answer(VOICE_UNAVAILABLE)
        return
    try:
        buffer = await bot.download(message.voice)
        audio = buffer.read() if buffer else b""
        text = await services.llm.transcribe(audio)
    except Exception:  # noqa: BLE001
        logger.exception("Ошибка распознавания голоса в чате %s", message.chat.id)
        await message.answer(APOLOGY)
        return

    if not text:
        await message.answer(VOICE_EMPTY)
        return

    await message.answer(f"🎙 <i>{escape(text)}</i>")
    try:
        await process_text(message, text, services)
    except Exception:  # noqa: BLE001
        logger.exception("Ошибка обработки голосового сообщения чата %s", message.chat.id)
        await message.answer(APOLOGY)


def register_voice_handler(dp: Dispatcher, bot: Bot, services: AppServices) -> None:
    @dp.message(F.voice)
    async def on_voice(message: Message) -> None:
        await handle_voice(message, bot, services)
