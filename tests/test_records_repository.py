from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from family_bot.models import IDEA, REMINDER, TASK, TRANSACTION, Record
from family_bot.services.gateway import PersistenceGateway

MSK = ZoneInfo("Europe/Moscow")


@pytest.mark.asyncio
async def test_transaction_round_trip_keeps_sign_and_project(records_repo):
    gateway = PersistenceGateway(records_repo)
    expense = Record(
        kind=TRANSACTION,
        owner_chat_id="1",
        telegram_chat_id="1",
        description="бензин",
        project="Cars",
        amount="-500",
        date="2026-10-19",
    )

    assert await gateway.save_transaction(expense) is True

    rows = await records_repo.list_records(TRANSACTION, owner_chat_id="1")
    assert len(rows) == 1
    assert rows[0]["amount"] == "-500"
    assert rows[0]["project"] == "Cars"
    assert rows[0]["kind"] == TRANSACTION


@pytest.mark.asyncio
async def test_gateway_rejects_wrong_kind(records_repo):
    gateway = PersistenceGateway(records_repo)
    idea = Record(kind=IDEA, owner_chat_id="1", telegram_chat_id="1", description="x")

    assert await gateway.save_task(idea) is False
    assert await records_repo.list_records(IDEA) == []


@pytest.mark.asyncio
async def test_gateway_returns_false_on_storage_error():
    class BrokenRepo:
        async def add(self, record):
            raise RuntimeError("db is down")

    gateway = PersistenceGateway(BrokenRepo())
    record = Record(kind=TASK, owner_chat_id="1", telegram_chat_id="1", description="x")

    assert await gateway.save(record) is False


@pytest.mark.asyncio
async def test_each_kind_lands_in_its_table(records_repo):
    gateway = PersistenceGateway(records_repo)
    for kind in (TRANSACTION, TASK, IDEA, REMINDER):
        assert await gateway.save(
            Record(kind=kind, owner_chat_id="1", telegram_chat_id="1", description=kind)
        )

    for kind in (TRANSACTION, TASK, IDEA, REMINDER):
        rows = await records_repo.list_records(kind)
        assert [row["description"] for row in rows] == [kind]


@pytest.mark.asyncio
async def test_task_status_defaults_to_new(records_repo):
    await records_repo.add(Record(kind=TASK, owner_chat_id="1", telegram_chat_id="1", description="x"))
    rows = await records_repo.list_records(TASK)
    assert rows[0]["status"] == "new"


@pytest.mark.asyncio
async def test_recent_merges_kinds_newest_first(records_repo):
    base = datetime(2026, 10, 19, 10, 0, tzinfo=MSK)
    for offset, kind in enumerate((TRANSACTION, TASK, IDEA)):
        await records_repo.add(
            Record(
                kind=kind,
                owner_chat_id="1",
                telegram_chat_id="1",
                description=kind,
                created_at=(base + timedelta(minutes=offset)).isoformat(),
            )
        )

    rows = await records_repo.list_recent((TRANSACTION, TASK, IDEA), limit=2, owner_chat_id="1")
    assert [row["kind"] for row in rows] == [IDEA, TASK]


@pytest.mark.asyncio
async def test_due_reminders_and_mark_sent(records_repo):
    now = datetime(2026, 10, 19, 12, 0, tzinfo=MSK)
    due = Record(
        kind=REMINDER,
        owner_chat_id="1",
        telegram_chat_id="1",
        description="посылка",
        remind_at=(now - timedelta(minutes=1)).isoformat(),
    )
    later = Record(
        kind=REMINDER,
        owner_chat_id="1",
        telegram_chat_id="1",
        description="позже",
        remind_at=(now + timedelta(hours=1)).isoformat(),
    )
    await records_repo.add(due)
    await records_repo.add(later)

    rows = await records_repo.get_due_reminders(now)
    assert [row["id"] for row in rows] == [due.id]

    await records_repo.mark_reminder_sent(due.id)
    assert await records_repo.get_due_reminders(now) == []


@pytest.mark.asyncio
async def test_list_between_filters_by_date_and_project(records_repo):
    for day, project in (("2026-10-01", "GO"), ("2026-10-10", "GO"), ("2026-10-10", "Cars")):
        await records_repo.add(
            Record(
                kind=TRANSACTION,
                owner_chat_id="1",
                telegram_chat_id="1",
                amount="+1",
                project=project,
                date=day,
            )
        )

    rows = await records_repo.list_between(
        TRANSACTION, date(2026, 10, 5), date(2026, 10, 19), project="GO"
    )
    assert [row["date"] for row in rows] == ["2026-10-10"]
