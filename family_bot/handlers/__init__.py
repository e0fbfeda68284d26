"""Хендлеры Telegram: регистрация через register_*(dp, ...)."""
