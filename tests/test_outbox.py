from datetime import datetime, timedelta

import pytest

from family_bot.models import MIRROR, NOTIFY, TASK, OutboxEntry
from family_bot.services.outbox import PostCommitProcessor, chat_target
from tests.conftest import FakeSender, FakeSheets


def _mirror_entry():
    return OutboxEntry(
        record_id="r1",
        record_kind=TASK,
        hook=MIRROR,
        target="sheet-1",
        payload={"sheet": "Задачи", "headers": ["Дата"], "values": ["2026-10-19"]},
    )


def test_chat_target():
    assert chat_target("123") == 123
    assert chat_target("-100500") == -100500
    assert chat_target("@family") == "@family"


@pytest.mark.asyncio
async def test_mirror_entry_appends_row(outbox_repo):
    sheets = FakeSheets()
    processor = PostCommitProcessor(outbox_repo, FakeSender(), sheets)
    entry = _mirror_entry()
    await processor.enqueue([entry])

    assert await processor.process([entry]) == 1
    assert sheets.rows == [("sheet-1", "Задачи", ["2026-10-19"])]
    [stored] = await outbox_repo.list_by_record("r1")
    assert stored.status == "done"
    assert stored.attempts == 1


@pytest.mark.asyncio
async def test_failed_entry_is_retried_until_limit(outbox_repo):
    sheets = FakeSheets(error=RuntimeError("quota exceeded"))
    processor = PostCommitProcessor(outbox_repo, FakeSender(), sheets, max_attempts=2)
    entry = _mirror_entry()
    await processor.enqueue([entry])

    await processor.process([entry])
    [stored] = await outbox_repo.list_by_record("r1")
    assert stored.status == "failed"
    assert stored.last_error == "quota exceeded"

    # вторая попытка из планировщика, тоже неудачная
    assert await processor.retry_failed() == 0
    [stored] = await outbox_repo.list_by_record("r1")
    assert stored.attempts == 2

    # лимит исчерпан: больше не повторяем
    assert await outbox_repo.list_retryable(2) == []


@pytest.mark.asyncio
async def test_retry_delivers_after_recovery(outbox_repo):
    sender = FakeSender(fail_for=("55",))
    processor = PostCommitProcessor(outbox_repo, sender, None)
    entry = OutboxEntry(record_id="r2", record_kind=TASK, hook=NOTIFY, target="55", payload={"text": "hi"})
    await processor.enqueue([entry])
    await processor.process([entry])

    sender.fail_for.clear()
    assert await processor.retry_failed() == 1
    assert sender.sent == [(55, "hi")]
    [stored] = await outbox_repo.list_by_record("r2")
    assert stored.status == "done"
    assert stored.attempts == 2


@pytest.mark.asyncio
async def test_stale_pending_entry_is_picked_up(outbox_repo):
    sender = FakeSender()
    processor = PostCommitProcessor(outbox_repo, sender, None)
    entry = OutboxEntry(record_id="r4", record_kind=TASK, hook=NOTIFY, target="77", payload={"text": "hi"})
    # сохранили, но до process дело не дошло
    await processor.enqueue([entry])

    # свежий pending не трогаем: его ещё доставляет исходный обработчик
    assert await processor.retry_failed() == 0
    assert sender.sent == []

    later = datetime.now().astimezone() + timedelta(minutes=5)
    assert await processor.retry_failed(now=later) == 1
    assert sender.sent == [(77, "hi")]
    [stored] = await outbox_repo.list_by_record("r4")
    assert stored.status == "done"
    assert stored.attempts == 1

    assert await processor.retry_failed(now=later) == 0


@pytest.mark.asyncio
async def test_missing_bot_or_sheets_marks_failed(outbox_repo):
    processor = PostCommitProcessor(outbox_repo, None, FakeSheets(configured=False))
    notify = OutboxEntry(record_id="r3", record_kind=TASK, hook=NOTIFY, target="1", payload={"text": "x"})
    mirror = _mirror_entry()
    await processor.enqueue([notify, mirror])

    assert await processor.process([notify, mirror]) == 0
    assert notify.status == "failed"
    assert mirror.status == "failed"
