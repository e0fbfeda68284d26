import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from family_bot.models import MIRROR, NOTIFY, NotificationSetting, Record, TASK, TRANSACTION
from family_bot.services.classifier import APOLOGY
from family_bot.services.formatters import SAVE_FAILED
from family_bot.services.pipeline import MessagePipeline
from tests.conftest import FakeChatClient, FakeSender, FakeSheets, make_services

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=ZoneInfo("Europe/Moscow"))


class FailingGateway:
    async def save(self, record):
        return False


class CountingFanout:
    def __init__(self):
        self.calls = 0

    async def plan(self, record):
        self.calls += 1
        return []


class CountingMirror(CountingFanout):
    async def plan(self, record):
        self.calls += 1
        return None


@pytest.mark.asyncio
async def test_text_reply_is_passed_through(store, users_repo):
    services = make_services(store, chat_client=FakeChatClient("Привет! <3"))
    context = await users_repo.load_context("1")

    result = await services.pipeline.handle_text("привет", context, now=NOW)

    assert result.reply == "Привет! &lt;3"
    assert result.saved is False
    assert result.record is None


@pytest.mark.asyncio
async def test_llm_failure_becomes_apology(store, users_repo):
    services = make_services(store, chat_client=FakeChatClient(error=TimeoutError()))
    context = await users_repo.load_context("1")

    result = await services.pipeline.handle_text("потратил 500", context, now=NOW)

    assert result.reply == APOLOGY


@pytest.mark.asyncio
async def test_transaction_is_saved_and_hooks_planned(store, users_repo, settings_repo, records_repo, outbox_repo):
    reply = json.dumps({"type": "transaction", "amount": "-500", "project": "Cars", "description": "бензин"})
    sender = FakeSender()
    sheets = FakeSheets()
    services = make_services(
        store,
        chat_client=FakeChatClient(reply),
        sender=sender,
        sheets=sheets,
        default_spreadsheet_id="main-sheet",
    )
    await settings_repo.save(
        NotificationSetting(owner_chat_id="1", project="Cars", channels={TRANSACTION: ["@cars"]})
    )
    context = await users_repo.load_context("1")

    result = await services.pipeline.handle_text("потратил 500 на бензин", context, now=NOW)

    assert result.saved is True
    assert result.reply.startswith("✅ Добавлено в транзакции для проекта Cars")
    assert [e.hook for e in result.post_commit] == [NOTIFY, MIRROR]

    rows = await records_repo.list_records(TRANSACTION, owner_chat_id="1")
    assert rows[0]["amount"] == "-500"
    assert rows[0]["date"] == "2026-10-19"
    assert rows[0]["telegram_chat_id"] == "1"

    # до run_post_commit ничего не отправлено
    assert sender.sent == []
    assert await services.pipeline.run_post_commit(result) == 2
    assert sender.sent[0][0] == "@cars"
    assert sheets.rows[0][:2] == ("main-sheet", "Транзакции")
    statuses = {e.hook: e.status for e in await outbox_repo.list_by_record(result.record.id)}
    assert statuses == {NOTIFY: "done", MIRROR: "done"}


@pytest.mark.asyncio
async def test_task_for_team_member_goes_to_their_chat(store, users_repo, records_repo):
    reply = json.dumps({"type": "task", "description": "купить корм", "person": "Саша", "project": "Family"})
    services = make_services(store, chat_client=FakeChatClient(reply))
    await users_repo.add_alias("1", "Саша", "2")
    context = await users_repo.load_context("1")

    result = await services.pipeline.handle_text("Саше купить корм", context, now=NOW)

    assert result.record.telegram_chat_id == "2"
    assert result.record.owner_chat_id == "1"
    rows = await records_repo.list_records(TASK, owner_chat_id="1")
    assert rows[0]["telegram_chat_id"] == "2"


@pytest.mark.asyncio
async def test_save_failure_skips_fanout_and_mirror(store):
    services = make_services(store)
    fanout = CountingFanout()
    mirror = CountingMirror()
    pipeline = MessagePipeline(
        services.pipeline._classifier,
        FailingGateway(),
        fanout,
        mirror,
        services.processor,
    )
    record = Record(kind=TRANSACTION, owner_chat_id="1", telegram_chat_id="1", amount="-1", project="GO")

    result = await pipeline.submit(record)

    assert result.saved is False
    assert result.reply == SAVE_FAILED
    assert result.post_commit == []
    assert fanout.calls == 0
    assert mirror.calls == 0
    assert await pipeline.run_post_commit(result) == 0


@pytest.mark.asyncio
async def test_reminder_has_no_hooks(store, users_repo):
    reply = json.dumps({"type": "reminder", "description": "забрать посылку через 2 часа"})
    services = make_services(store, chat_client=FakeChatClient(reply), sheets=FakeSheets(), default_spreadsheet_id="s")
    context = await users_repo.load_context("1")

    result = await services.pipeline.handle_text("напомни через 2 часа забрать посылку", context, now=NOW)

    assert result.saved is True
    assert result.post_commit == []
    assert result.record.remind_at == "2026-10-19T14:00:00+03:00"
    assert "19.10.2026 14:00" in result.reply
