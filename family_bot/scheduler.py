"""
Сервис планировщика.

Инкапсулирует APScheduler: регистрация задач и start. app.py и api.main
работают только с SchedulerService.start().
"""

# ⚠️ Infrastructure boundary: APScheduler implementation
# Do not import this module outside services layer


from __future__ import annotations

import logging
from typing import Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import TIMEZONE


logger = logging.getLogger(__name__)


class RemindersServiceProtocol(Protocol):
    """Минимальный интерфейс сервиса напоминаний для планировщика."""

    async def send_due_reminders(self) -> int: ...

    async def send_daily_digest(self) -> int: ...


class OutboxRetryProtocol(Protocol):
    async def retry_failed(self) -> int: ...


class SchedulerService:
    """
    Планировщик: разовые напоминания, дайджест задач и повтор упавших доставок.

    Реализация (APScheduler) скрыта; можно заменить на внешний воркер.
    """

    def __init__(
        self,
        reminders_service: RemindersServiceProtocol,
        outbox_processor: OutboxRetryProtocol,
        *,
        timezone: str = TIMEZONE,
    ) -> None:
        self._reminders = reminders_service
        self._outbox = outbox_processor
        self._scheduler = AsyncIOScheduler(timezone=timezone)
        self._register_default_jobs()

    @property
    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def _register_default_jobs(self) -> None:
        """Регистрирует задачи: каждую минуту, 7:00/13:00/19:00, каждые 5 минут."""
        self._scheduler.add_job(
            self._reminders.send_due_reminders,
            CronTrigger(minute="*"),
            id="due_reminders",
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._reminders.send_daily_digest,
            CronTrigger(hour="7,13,19", minute=0),
            id="daily_digest",
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._outbox.retry_failed,
            IntervalTrigger(minutes=5),
            id="outbox_retry",
            replace_existing=True,
        )
        logger.info(
            "Scheduler настроен: напоминания каждую минуту, дайджест в 7:00/13:00/19:00, "
            "повтор доставок каждые 5 минут",
        )

    def start(self) -> None:
        """Запускает планировщик."""
        if self._scheduler.running:
            logger.info("Scheduler уже запущен, повторный старт пропущен")
            return
        logger.info("Запуск scheduler...")
        self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
