"""
Семейный помощник — Telegram-бот (polling).

Вся логика в family_bot; здесь только запуск.
"""

import asyncio

from family_bot.app import run


if __name__ == "__main__":
    asyncio.run(run())
