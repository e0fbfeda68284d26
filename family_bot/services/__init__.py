"""Сервисы конвейера обработки сообщений."""
