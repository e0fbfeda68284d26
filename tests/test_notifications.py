import pytest

from family_bot.models import IDEA, NOTIFY, REMINDER, TASK, TRANSACTION, NotificationSetting, Record
from family_bot.services.formatters import format_notification
from family_bot.services.notifications import NotificationFanout
from family_bot.services.outbox import PostCommitProcessor
from tests.conftest import FakeSender


def _task(**kwargs):
    values = dict(kind=TASK, owner_chat_id="100", telegram_chat_id="100", description="купить корм", project="Family")
    values.update(kwargs)
    return Record(**values)


@pytest.mark.asyncio
async def test_no_settings_means_no_targets(settings_repo):
    fanout = NotificationFanout(settings_repo)
    assert await fanout.plan(_task()) == []


@pytest.mark.asyncio
async def test_targets_personal_chats_and_channels(settings_repo):
    await settings_repo.save(
        NotificationSetting(
            owner_chat_id="100",
            project="Family",
            notify_personal=True,
            chats={TASK: ["300", "200"]},
            channels={TASK: ["@family_news"], IDEA: ["@ideas"]},
        )
    )
    fanout = NotificationFanout(settings_repo)

    entries = await fanout.plan(_task(telegram_chat_id="200"))

    assert [e.target for e in entries] == ["200", "300", "@family_news"]
    assert all(e.hook == NOTIFY for e in entries)
    assert "купить корм" in entries[0].payload["text"]


@pytest.mark.asyncio
async def test_personal_skipped_when_disabled_or_same_chat(settings_repo):
    await settings_repo.save(
        NotificationSetting(owner_chat_id="100", project="Family", notify_personal=False, chats={TASK: ["300"]})
    )
    fanout = NotificationFanout(settings_repo)

    assert [e.target for e in await fanout.plan(_task(telegram_chat_id="200"))] == ["300"]
    assert [e.target for e in await fanout.plan(_task())] == ["300"]


@pytest.mark.asyncio
async def test_settings_are_per_project(settings_repo):
    await settings_repo.save(NotificationSetting(owner_chat_id="100", project="GO", chats={TASK: ["300"]}))
    fanout = NotificationFanout(settings_repo)

    assert await fanout.plan(_task(project="Family")) == []


@pytest.mark.asyncio
async def test_reminders_are_not_fanned_out(settings_repo):
    await settings_repo.save(NotificationSetting(owner_chat_id="100", project="Family", chats={TASK: ["300"]}))
    fanout = NotificationFanout(settings_repo)

    assert await fanout.plan(_task(kind=REMINDER)) == []


@pytest.mark.asyncio
async def test_settings_lookup_error_gives_empty_plan():
    class BrokenSettings:
        async def get(self, owner_chat_id, project):
            raise RuntimeError("db is down")

    assert await NotificationFanout(BrokenSettings()).plan(_task()) == []


@pytest.mark.asyncio
async def test_one_failing_target_does_not_block_others(settings_repo, outbox_repo):
    await settings_repo.save(
        NotificationSetting(
            owner_chat_id="100",
            project="Family",
            chats={TRANSACTION: ["201", "202", "203"]},
        )
    )
    record = Record(
        kind=TRANSACTION,
        owner_chat_id="100",
        telegram_chat_id="100",
        description="бензин",
        project="Family",
        amount="-500",
    )
    sender = FakeSender(fail_for=("202",))
    processor = PostCommitProcessor(outbox_repo, sender, None)

    entries = await NotificationFanout(settings_repo).plan(record)
    await processor.enqueue(entries)
    delivered = await processor.process(entries)

    assert delivered == 2
    assert [chat for chat, _ in sender.sent] == [201, 203]
    stored = {e.target: e for e in await outbox_repo.list_by_record(record.id)}
    assert stored["202"].status == "failed"
    assert "chat not found" in stored["202"].last_error
    assert stored["201"].status == "done"
    assert stored["203"].status == "done"


def test_notification_text_is_escaped():
    text = format_notification(_task(description="<b>кот</b> & пёс"))
    assert "&lt;b&gt;кот&lt;/b&gt; &amp; пёс" in text


def test_expense_and_income_icons():
    expense = Record(kind=TRANSACTION, owner_chat_id="1", telegram_chat_id="1", amount="-10")
    income = Record(kind=TRANSACTION, owner_chat_id="1", telegram_chat_id="1", amount="+10")
    assert format_notification(expense).startswith("💸")
    assert format_notification(income).startswith("💰")
