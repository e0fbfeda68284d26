from __future__ import annotations

from typing import Any, Optional

import pytest
import pytest_asyncio

from family_bot.repositories.outbox import TableOutboxRepository
from family_bot.repositories.records import TableRecordRepository
from family_bot.repositories.settings import TableNotificationSettingsRepository
from family_bot.repositories.users import TableUsersRepository
from family_bot.services.classifier import LlmClassifier
from family_bot.services.gateway import PersistenceGateway
from family_bot.services.llm import OpenAiLlmClient
from family_bot.services.mirror import SheetsMirror
from family_bot.services.notifications import NotificationFanout
from family_bot.services.outbox import PostCommitProcessor
from family_bot.services.pipeline import MessagePipeline
from family_bot.services.setup_wizard import NotificationSetupWizard
from services.pipeline_service import AppServices
from storage import AiosqliteDatabaseProvider, SqliteTableStore, init_db

PROJECTS = ["GO", "Glamping", "Family", "Cars"]


class FakeChatClient:
    """Чат-модель с заранее заданным ответом или ошибкой."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[list[dict[str, str]]] = []

    async def chat(self, messages, *, max_tokens: int = 1000, temperature: float = 0.7) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSender:
    """Бот: запоминает сообщения, для chat_id из fail_for бросает ошибку."""

    def __init__(self, fail_for: tuple = ()) -> None:
        self.fail_for = {str(x) for x in fail_for}
        self.sent: list[tuple[Any, str]] = []

    async def send_message(self, chat_id, text, **kwargs):
        if str(chat_id) in self.fail_for:
            raise RuntimeError(f"chat not found: {chat_id}")
        self.sent.append((chat_id, text))


class FakeSheets:
    def __init__(self, configured: bool = True, error: Optional[Exception] = None) -> None:
        self._configured = configured
        self.error = error
        self.rows: list[tuple[str, str, list[str]]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def append_row(self, spreadsheet_id, sheet_name, headers, values) -> None:
        if self.error is not None:
            raise self.error
        self.rows.append((spreadsheet_id, sheet_name, list(values)))


async def make_store(path) -> SqliteTableStore:
    provider = AiosqliteDatabaseProvider(str(path))
    await init_db(provider)
    return SqliteTableStore(provider)


def make_services(
    store: SqliteTableStore,
    *,
    chat_client: Optional[FakeChatClient] = None,
    sender: Optional[FakeSender] = None,
    sheets: Optional[FakeSheets] = None,
    default_spreadsheet_id: str = "",
) -> AppServices:
    records = TableRecordRepository(store)
    users = TableUsersRepository(store)
    settings = TableNotificationSettingsRepository(store)
    sheets = sheets or FakeSheets(configured=False)
    processor = PostCommitProcessor(TableOutboxRepository(store), sender, sheets, max_attempts=3)
    pipeline = MessagePipeline(
        LlmClassifier(chat_client or FakeChatClient("Привет!"), projects=PROJECTS),
        PersistenceGateway(records),
        NotificationFanout(settings),
        SheetsMirror(users, sheets, default_spreadsheet_id),
        processor,
        timezone="Europe/Moscow",
    )
    return AppServices(
        pipeline=pipeline,
        processor=processor,
        wizard=NotificationSetupWizard(users, settings, PROJECTS),
        llm=OpenAiLlmClient(),
        records=records,
        users=users,
        settings=settings,
    )


@pytest_asyncio.fixture
async def store(tmp_path):
    return await make_store(tmp_path / "test.db")


@pytest.fixture
def records_repo(store):
    return TableRecordRepository(store)


@pytest.fixture
def users_repo(store):
    return TableUsersRepository(store)


@pytest.fixture
def settings_repo(store):
    return TableNotificationSettingsRepository(store)


@pytest.fixture
def outbox_repo(store):
    return TableOutboxRepository(store)
