"""
Инициализация доступа к БД для бота и API.

ARCH: только фабрики (get_database_provider, get_table_store, get_*_repo). Никакой
бизнес-логики и SQL. Handlers и api.main не создают соединений.
"""

from typing import Optional

from config import DATABASE_PATH
from family_bot.repositories.outbox import TableOutboxRepository
from family_bot.repositories.records import TableRecordRepository
from family_bot.repositories.settings import TableNotificationSettingsRepository
from family_bot.repositories.users import TableUsersRepository
from storage.database import AiosqliteDatabaseProvider, DatabaseProvider, SqliteTableStore, TableStore

DATABASE = DATABASE_PATH

_provider: Optional[DatabaseProvider] = None
_store: Optional[TableStore] = None


def get_database_provider() -> DatabaseProvider:
    """Единый провайдер соединений с БД (используется при старте приложения)."""
    global _provider
    if _provider is None:
        _provider = AiosqliteDatabaseProvider(DATABASE)
    return _provider


def get_table_store() -> TableStore:
    """Табличное хранилище поверх провайдера."""
    global _store
    if _store is None:
        _store = SqliteTableStore(get_database_provider())
    return _store


def get_records_repo() -> TableRecordRepository:
    return TableRecordRepository(get_table_store())


def get_users_repo() -> TableUsersRepository:
    return TableUsersRepository(get_table_store())


def get_settings_repo() -> TableNotificationSettingsRepository:
    return TableNotificationSettingsRepository(get_table_store())


def get_outbox_repo() -> TableOutboxRepository:
    return TableOutboxRepository(get_table_store())
