#!/usr/bin/env python3
"""
Поменять тариф пользователя вручную.

Использование:
  python scripts/set_tier.py --chat-id 827628064 --tier family
  docker compose run --rm api python scripts/set_tier.py --chat-id 827628064 --tier free
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from storage import init_db  # noqa: E402
from storage.bootstrap import get_database_provider, get_users_repo  # noqa: E402


async def set_tier(chat_id: str, tier: str) -> None:
    await init_db(get_database_provider())
    users = get_users_repo()
    await users.get_or_create(chat_id)
    await users.set_tier(chat_id, tier)
    print(f"✓ chat_id {chat_id}: тариф {tier}")


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--chat-id", required=True, help="Telegram chat_id")
    ap.add_argument("--tier", required=True, help="Тариф: free, family, …")
    args = ap.parse_args()
    asyncio.run(set_tier(args.chat_id, args.tier))
