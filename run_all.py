"""
Запуск бота и API вместе.

Если задан WEBHOOK_URL, обновления Telegram приходят в API (/webhook) и
отдельный процесс бота не нужен: API сам ведёт планировщик.
"""

import subprocess
import sys

from config import WEBHOOK_URL


def main():
    # Запускаем API в отдельном процессе
    api_process = subprocess.Popen([
        sys.executable, "-m", "uvicorn",
        "api.main:app",
        "--host", "0.0.0.0",
        "--port", "8000"
    ])

    # В режиме вебхука бот работает внутри API
    bot_process = None if WEBHOOK_URL else subprocess.Popen([sys.executable, "bot.py"])

    try:
        api_process.wait()
        if bot_process is not None:
            bot_process.wait()
    except KeyboardInterrupt:
        api_process.terminate()
        if bot_process is not None:
            bot_process.terminate()


if __name__ == "__main__":
    main()
