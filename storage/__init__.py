"""
Хранилище: провайдер соединений, табличное хранилище и схема.

Фабрики репозиториев — в storage.bootstrap (импортируются явно, чтобы
репозитории могли импортировать storage.database без циклов).
"""

from storage.database import AiosqliteDatabaseProvider, Cmp, DatabaseProvider, SqliteTableStore, TableStore
from storage.schema import init_db

__all__ = [
    "AiosqliteDatabaseProvider",
    "Cmp",
    "DatabaseProvider",
    "SqliteTableStore",
    "TableStore",
    "init_db",
]
