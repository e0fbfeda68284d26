"""
Сервис планировщика напоминаний.

app.py только вызывает scheduler_service.start() и не знает про APScheduler.

This module acts as an isolation layer for scheduler implementation
(anti-corruption: bot depends on services.*, not directly on family_bot.scheduler).
"""

from family_bot.scheduler import SchedulerService
from family_bot.services.outbox import MessageSender, PostCommitProcessor
from family_bot.services.reminders import RemindersService
from storage.bootstrap import get_records_repo


def create_scheduler_service(bot: MessageSender, processor: PostCommitProcessor) -> SchedulerService:
    """Создаёт SchedulerService: инициализация и регистрация задач внутри сервиса."""
    reminders_service = RemindersService(bot, get_records_repo())
    return SchedulerService(reminders_service, processor)
