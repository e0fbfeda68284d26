"""Конфигурация бота и API."""

import os
from dotenv import load_dotenv

load_dotenv()

# Токен проверяется при запуске бота (family_bot.app.run), чтобы API и тесты
# импортировали конфиг без него.
BOT_TOKEN = os.getenv("BOT_TOKEN", "")

# Telegram Mini App (дашборд)
WEBAPP_URL = os.getenv("WEBAPP_URL", "")

# Публичный URL для вебхука. Пусто — бот работает через polling.
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")
WEBHOOK_PATH = "/webhook"

API_BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")

DATABASE_PATH = os.getenv("DATABASE_PATH", "data/family.db")

TIMEZONE = os.getenv("TIMEZONE", "Europe/Moscow")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ИИ: OpenAI напрямую или OpenRouter (совместимый API)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
AI_MODEL = os.getenv("AI_MODEL", "")
AI_TRANSCRIBE_MODEL = os.getenv("AI_TRANSCRIBE_MODEL", "whisper-1")
# 0 = таймаут SDK по умолчанию
AI_TIMEOUT = float(os.getenv("AI_TIMEOUT", "0"))

# Проекты, между которыми ИИ раскладывает записи
PROJECTS = [
    p.strip()
    for p in os.getenv("PROJECTS", "GO,Glamping,Family,Cars").split(",")
    if p.strip()
]

# Google Sheets (сервисный аккаунт). Без них зеркалирование выключено.
GOOGLE_SHEETS_CLIENT_EMAIL = os.getenv("GOOGLE_SHEETS_CLIENT_EMAIL", "")
GOOGLE_SHEETS_PRIVATE_KEY = os.getenv("GOOGLE_SHEETS_PRIVATE_KEY", "").replace("\\n", "\n")
GOOGLE_SHEETS_SPREADSHEET_ID = os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID", "")

# Сколько раз повторять доставку уведомления / запись в таблицу
OUTBOX_MAX_ATTEMPTS = int(os.getenv("OUTBOX_MAX_ATTEMPTS", "5"))
