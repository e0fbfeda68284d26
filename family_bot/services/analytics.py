"""Сводка по записям проекта за период: количество и суммы доходов/расходов."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from family_bot.models import HOOKED_KINDS, TRANSACTION
from family_bot.repositories.records import TableRecordRepository


logger = logging.getLogger(__name__)

PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 90, "year": 365}


def _amount(raw: Any) -> Decimal | None:
    text = str(raw or "").replace(" ", "").replace(",", ".")
    if not text:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        logger.warning("Сумма не разобрана: %r", raw)
        return None


def summarize_transactions(rows: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Доходы и расходы по знаку суммы."""
    income = Decimal("0")
    expense = Decimal("0")
    count = 0
    for row in rows:
        count += 1
        value = _amount(row.get("amount"))
        if value is None:
            continue
        if value > 0:
            income += value
        else:
            expense += -value
    return {
        "count": count,
        "income": float(income),
        "expense": float(expense),
        "balance": float(income - expense),
    }


def period_range(period: str, today: date) -> tuple[date, date]:
    days = PERIOD_DAYS.get(period)
    if days is None:
        raise ValueError(f"Неизвестный период: {period!r}")
    return today - timedelta(days=days - 1), today


async def build_analytics(
    records_repo: TableRecordRepository,
    *,
    period: str,
    today: date,
    owner_chat_id: str | None = None,
    project: str | None = None,
) -> dict[str, Any]:
    start, end = period_range(period, today)
    items: dict[str, list[dict[str, Any]]] = {}
    for kind in HOOKED_KINDS:
        items[kind] = await records_repo.list_between(kind, start, end, owner_chat_id=owner_chat_id, project=project)
    return {
        "period": period,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "project": project,
        "counts": {kind: len(rows) for kind, rows in items.items()},
        "finance": summarize_transactions(items[TRANSACTION]),
        "items": items,
    }
