"""
Зеркало записей в Google Таблицу.

Каждая сохранённая транзакция, задача или идея дописывается строкой на лист
своего вида. Лист и строка заголовков создаются при первой записи. Клиент
Google API синхронный, поэтому вызовы идут в executor.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol, Sequence

from google.oauth2 import service_account
from googleapiclient.discovery import build

from config import (
    GOOGLE_SHEETS_CLIENT_EMAIL,
    GOOGLE_SHEETS_PRIVATE_KEY,
    GOOGLE_SHEETS_SPREADSHEET_ID,
)
from family_bot.models import IDEA, MIRROR, TASK, TRANSACTION, OutboxEntry, Record
from family_bot.repositories.users import UsersRepository


logger = logging.getLogger(__name__)


class SheetsNotConfiguredError(RuntimeError):
    """Нет ключа сервисного аккаунта Google."""


SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Лист и колонки (поле записи, заголовок) для каждого вида
SHEET_LAYOUTS: dict[str, tuple[str, list[tuple[str, str]]]] = {
    TRANSACTION: (
        "Транзакции",
        [
            ("date", "Дата"),
            ("amount", "Сумма"),
            ("currency", "Валюта"),
            ("money_source", "Источник"),
            ("description", "Описание"),
            ("project", "Проект"),
            ("telegram_chat_id", "Чат"),
        ],
    ),
    TASK: (
        "Задачи",
        [
            ("date", "Дата"),
            ("description", "Описание"),
            ("project", "Проект"),
            ("person", "Ответственный"),
            ("status", "Статус"),
            ("priority", "Приоритет"),
            ("due_date", "Срок"),
            ("repeat_type", "Повтор"),
            ("repeat_until", "Повтор до"),
            ("telegram_chat_id", "Чат"),
        ],
    ),
    IDEA: (
        "Идеи",
        [
            ("date", "Дата"),
            ("description", "Описание"),
            ("project", "Проект"),
            ("link", "Ссылка"),
            ("file", "Файл"),
            ("telegram_chat_id", "Чат"),
        ],
    ),
}


def sheet_row(record: Record) -> tuple[str, list[str], list[str]]:
    """(лист, заголовки, значения) для записи."""
    sheet_name, columns = SHEET_LAYOUTS[record.kind]
    data = record.to_dict()
    if record.kind == TASK and not data.get("status"):
        data["status"] = "new"
    headers = [title for _, title in columns]
    values = ["" if data.get(name) is None else str(data[name]) for name, _ in columns]
    return sheet_name, headers, values


class SheetsClient(Protocol):
    @property
    def configured(self) -> bool:
        ...

    async def append_row(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        headers: Sequence[str],
        values: Sequence[str],
    ) -> None:
        ...


class GoogleSheetsClient:
    """Доступ к Google Sheets от имени сервисного аккаунта."""

    def __init__(self, client_email: str, private_key: str) -> None:
        self._client_email = client_email
        self._private_key = private_key
        self._service: Any = None

    @classmethod
    def from_config(cls) -> "GoogleSheetsClient":
        return cls(GOOGLE_SHEETS_CLIENT_EMAIL, GOOGLE_SHEETS_PRIVATE_KEY)

    @property
    def configured(self) -> bool:
        return bool(self._client_email and self._private_key)

    def _get_service(self) -> Any:
        if self._service is None:
            creds = service_account.Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": self._client_email,
                    "private_key": self._private_key,
                    "token_uri": TOKEN_URI,
                },
                scopes=SCOPES,
            )
            self._service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        return self._service

    def _ensure_sheet(self, service: Any, spreadsheet_id: str, sheet_name: str, headers: Sequence[str]) -> None:
        meta = service.spreadsheets().get(spreadsheetId=spreadsheet_id).execute()
        titles = [s["properties"]["title"] for s in meta.get("sheets", [])]
        if sheet_name in titles:
            return
        logger.info("Создаю лист %s в таблице %s", sheet_name, spreadsheet_id)
        service.spreadsheets().batchUpdate(
            spreadsheetId=spreadsheet_id,
            body={"requests": [{"addSheet": {"properties": {"title": sheet_name}}}]},
        ).execute()
        service.spreadsheets().values().update(
            spreadsheetId=spreadsheet_id,
            range=f"'{sheet_name}'!A1",
            valueInputOption="USER_ENTERED",
            body={"values": [list(headers)]},
        ).execute()

    async def append_row(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        headers: Sequence[str],
        values: Sequence[str],
    ) -> None:
        if not self.configured:
            raise SheetsNotConfiguredError("Google Sheets не настроен")

        def run() -> None:
            service = self._get_service()
            self._ensure_sheet(service, spreadsheet_id, sheet_name, headers)
            service.spreadsheets().values().append(
                spreadsheetId=spreadsheet_id,
                range=f"'{sheet_name}'!A1",
                valueInputOption="USER_ENTERED",
                insertDataOption="INSERT_ROWS",
                body={"values": [list(values)]},
            ).execute()

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, run)


class SheetsMirror:
    """Планирует строку в таблице пользователя для сохранённой записи."""

    def __init__(
        self,
        users_repo: UsersRepository,
        sheets: SheetsClient,
        default_spreadsheet_id: str = GOOGLE_SHEETS_SPREADSHEET_ID,
    ) -> None:
        self._users = users_repo
        self._sheets = sheets
        self._default_spreadsheet_id = default_spreadsheet_id

    async def spreadsheet_for(self, owner_chat_id: str) -> Optional[str]:
        """Таблица владельца, если зеркало включено; иначе None."""
        if not self._sheets.configured:
            return None
        profile = await self._users.get(owner_chat_id)
        if profile is not None and not profile.sheets_enabled:
            return None
        spreadsheet_id = (profile.spreadsheet_id if profile else None) or self._default_spreadsheet_id
        return spreadsheet_id or None

    async def plan(self, record: Record) -> Optional[OutboxEntry]:
        if record.kind not in SHEET_LAYOUTS:
            return None
        try:
            spreadsheet_id = await self.spreadsheet_for(record.owner_chat_id)
        except Exception:  # noqa: BLE001
            logger.exception("Не удалось определить таблицу для %s", record.id)
            return None
        if not spreadsheet_id:
            return None

        sheet_name, headers, values = sheet_row(record)
        return OutboxEntry(
            record_id=record.id,
            record_kind=record.kind,
            hook=MIRROR,
            target=spreadsheet_id,
            payload={"sheet": sheet_name, "headers": headers, "values": values},
        )
