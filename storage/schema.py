"""
Схема БД ассистента.

Таблицы записей (transactions, tasks, ideas, reminders) и служебные таблицы
(users, team_members, notification_settings, outbox). Колонки из TABLE_COLUMNS —
единственные идентификаторы, которые SqliteTableStore подставляет в SQL.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storage.database import DatabaseProvider


logger = logging.getLogger(__name__)


DDL = {
    "transactions": """
        CREATE TABLE IF NOT EXISTS transactions (
            id TEXT PRIMARY KEY,
            project TEXT,
            amount TEXT,
            currency TEXT,
            money_source TEXT,
            description TEXT,
            date TEXT,
            telegram_chat_id TEXT,
            owner_chat_id TEXT,
            created_at TEXT NOT NULL
        )
    """,
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            project TEXT,
            description TEXT,
            person TEXT,
            status TEXT,
            priority TEXT,
            date TEXT,
            due_date TEXT,
            repeat_type TEXT,
            repeat_until TEXT,
            telegram_chat_id TEXT,
            owner_chat_id TEXT,
            created_at TEXT NOT NULL
        )
    """,
    "ideas": """
        CREATE TABLE IF NOT EXISTS ideas (
            id TEXT PRIMARY KEY,
            project TEXT,
            description TEXT,
            link TEXT,
            file_name TEXT,
            date TEXT,
            telegram_chat_id TEXT,
            owner_chat_id TEXT,
            created_at TEXT NOT NULL
        )
    """,
    "reminders": """
        CREATE TABLE IF NOT EXISTS reminders (
            id TEXT PRIMARY KEY,
            project TEXT,
            description TEXT,
            remind_at TEXT,
            status TEXT DEFAULT 'pending',
            date TEXT,
            telegram_chat_id TEXT,
            owner_chat_id TEXT,
            created_at TEXT NOT NULL
        )
    """,
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            chat_id TEXT PRIMARY KEY,
            username TEXT,
            first_name TEXT,
            tier TEXT DEFAULT 'free',
            spreadsheet_id TEXT,
            sheets_enabled INTEGER DEFAULT 1,
            meta TEXT DEFAULT '{}',
            created_at TEXT NOT NULL
        )
    """,
    "team_members": """
        CREATE TABLE IF NOT EXISTS team_members (
            owner_chat_id TEXT NOT NULL,
            name TEXT NOT NULL,
            telegram_chat_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            PRIMARY KEY (owner_chat_id, name)
        )
    """,
    "notification_settings": """
        CREATE TABLE IF NOT EXISTS notification_settings (
            owner_chat_id TEXT NOT NULL,
            project TEXT NOT NULL,
            notify_personal INTEGER DEFAULT 1,
            transaction_chats TEXT DEFAULT '[]',
            transaction_channels TEXT DEFAULT '[]',
            task_chats TEXT DEFAULT '[]',
            task_channels TEXT DEFAULT '[]',
            idea_chats TEXT DEFAULT '[]',
            idea_channels TEXT DEFAULT '[]',
            updated_at TEXT,
            PRIMARY KEY (owner_chat_id, project)
        )
    """,
    "outbox": """
        CREATE TABLE IF NOT EXISTS outbox (
            id TEXT PRIMARY KEY,
            record_id TEXT NOT NULL,
            record_kind TEXT NOT NULL,
            hook TEXT NOT NULL,
            target TEXT NOT NULL,
            payload TEXT NOT NULL,
            status TEXT DEFAULT 'pending',
            attempts INTEGER DEFAULT 0,
            last_error TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT
        )
    """,
}

TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "transactions": (
        "id", "project", "amount", "currency", "money_source", "description",
        "date", "telegram_chat_id", "owner_chat_id", "created_at",
    ),
    "tasks": (
        "id", "project", "description", "person", "status", "priority", "date",
        "due_date", "repeat_type", "repeat_until", "telegram_chat_id",
        "owner_chat_id", "created_at",
    ),
    "ideas": (
        "id", "project", "description", "link", "file_name", "date",
        "telegram_chat_id", "owner_chat_id", "created_at",
    ),
    "reminders": (
        "id", "project", "description", "remind_at", "status", "date",
        "telegram_chat_id", "owner_chat_id", "created_at",
    ),
    "users": (
        "chat_id", "username", "first_name", "tier", "spreadsheet_id",
        "sheets_enabled", "meta", "created_at",
    ),
    "team_members": ("owner_chat_id", "name", "telegram_chat_id", "created_at"),
    "notification_settings": (
        "owner_chat_id", "project", "notify_personal",
        "transaction_chats", "transaction_channels",
        "task_chats", "task_channels",
        "idea_chats", "idea_channels",
        "updated_at",
    ),
    "outbox": (
        "id", "record_id", "record_kind", "hook", "target", "payload", "status",
        "attempts", "last_error", "created_at", "updated_at",
    ),
}

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_tasks_date ON tasks (date)",
    "CREATE INDEX IF NOT EXISTS idx_reminders_due ON reminders (status, remind_at)",
    "CREATE INDEX IF NOT EXISTS idx_outbox_status ON outbox (status)",
)


async def init_db(provider: "DatabaseProvider") -> None:
    """Создаёт таблицы, если их нет. Вызывается при старте бота и API."""
    async with provider.connection() as db:
        for ddl in DDL.values():
            await db.execute(ddl)
        for index in INDEXES:
            await db.execute(index)
        await db.commit()
    logger.info("Схема БД готова (%d таблиц)", len(DDL))
