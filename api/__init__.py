"""
Family Assistant API package.

Webhook endpoint for Telegram updates and the JSON API used by the
dashboard Mini App (`api.main:app`).
"""
