#!/usr/bin/env python3
"""
Зарегистрировать (или снять) вебхук Telegram на WEBHOOK_URL + /webhook.

Использование:
  python scripts/set_webhook.py
  python scripts/set_webhook.py --delete   # вернуться к polling (bot.py)
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import WEBHOOK_PATH, WEBHOOK_URL  # noqa: E402
from family_bot.app import create_bot  # noqa: E402


async def set_webhook(delete: bool) -> None:
    bot = create_bot()
    try:
        if delete:
            await bot.delete_webhook()
            print("✓ вебхук снят")
            return
        if not WEBHOOK_URL:
            raise SystemExit("WEBHOOK_URL не задан")
        url = WEBHOOK_URL.rstrip("/") + WEBHOOK_PATH
        await bot.set_webhook(url, allowed_updates=["message", "callback_query"])
        print(f"✓ вебхук: {url}")
    finally:
        await bot.session.close()


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--delete", action="store_true", help="Снять вебхук")
    args = ap.parse_args()
    asyncio.run(set_webhook(args.delete))
