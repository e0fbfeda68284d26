from datetime import date

import pytest

from family_bot.models import IDEA, TRANSACTION, Record
from family_bot.services.analytics import build_analytics, period_range, summarize_transactions


def test_totals_by_sign():
    summary = summarize_transactions(
        [{"amount": "+2000"}, {"amount": "-500"}, {"amount": "-1 200,50"}, {"amount": None}, {"amount": "abc"}]
    )
    assert summary["count"] == 5
    assert summary["income"] == 2000.0
    assert summary["expense"] == 1700.5
    assert summary["balance"] == 299.5


def test_period_range():
    assert period_range("week", date(2026, 10, 19)) == (date(2026, 10, 13), date(2026, 10, 19))
    with pytest.raises(ValueError):
        period_range("decade", date(2026, 10, 19))


@pytest.mark.asyncio
async def test_build_analytics(records_repo):
    for amount, day in (("+1000", "2026-10-18"), ("-300", "2026-10-19"), ("-50", "2026-09-01")):
        await records_repo.add(
            Record(kind=TRANSACTION, owner_chat_id="1", telegram_chat_id="1", amount=amount, date=day, project="GO")
        )
    await records_repo.add(Record(kind=IDEA, owner_chat_id="1", telegram_chat_id="1", date="2026-10-19", project="GO"))

    result = await build_analytics(records_repo, period="week", today=date(2026, 10, 19), project="GO")

    assert result["counts"] == {"transaction": 2, "task": 0, "idea": 1}
    assert result["finance"]["income"] == 1000.0
    assert result["finance"]["expense"] == 300.0
