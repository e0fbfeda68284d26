"""
Инициализация Telegram-бота.

Тонкий слой: создание Bot/Dispatcher, сборка сервисов, регистрация хендлеров
и точка запуска run() (polling). В режиме вебхука тот же Dispatcher
собирает api.main.
"""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from config import BOT_TOKEN, LOG_LEVEL, WEBAPP_URL
from family_bot.handlers.callbacks import register_callback_handlers
from family_bot.handlers.messages import register_message_handler
from family_bot.handlers.settings import register_settings_handlers
from family_bot.handlers.start import register_start_handlers
from family_bot.handlers.voice import register_voice_handler
from services import AppServices, build_app_services, create_scheduler_service
from storage import init_db
from storage.bootstrap import get_database_provider


logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_bot(token: str = BOT_TOKEN) -> Bot:
    if not token:
        raise ValueError("BOT_TOKEN не задан в переменных окружения")
    return Bot(
        token=token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_dispatcher(bot: Bot, services: AppServices) -> Dispatcher:
    """Dispatcher с хендлерами. Общий текстовый хендлер — последним."""
    dp = Dispatcher()
    register_start_handlers(dp, services.users, WEBAPP_URL)
    register_settings_handlers(dp, services)
    register_callback_handlers(dp, services)
    register_voice_handler(dp, bot, services)
    register_message_handler(dp, services)
    return dp


async def run() -> None:
    """Точка запуска бота в режиме polling."""
    logger.info("Запуск бота...")
    await init_db(get_database_provider())

    bot = create_bot()
    services = build_app_services(bot)
    dp = create_dispatcher(bot, services)

    scheduler = create_scheduler_service(bot, services.processor)
    scheduler.start()

    # Вебхук мог остаться от запуска через API
    await bot.delete_webhook(drop_pending_updates=False)
    try:
        await dp.start_polling(bot)
    finally:
        scheduler.shutdown()
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(run())
