"""
Семейный ассистент в Telegram.

Пакет бота: модели, репозитории, сервисы конвейера (классификатор,
нормализатор, сохранение, уведомления, зеркало в Google Sheets) и хендлеры.
"""
