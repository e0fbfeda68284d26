"""
Сборка конвейера сообщений и связанных сервисов.

Один набор сервисов на процесс: бот (polling) и API (webhook) собирают его
через build_app_services и дальше работают только с AppServices.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config import OUTBOX_MAX_ATTEMPTS, PROJECTS
from family_bot.repositories.records import TableRecordRepository
from family_bot.repositories.settings import TableNotificationSettingsRepository
from family_bot.repositories.users import TableUsersRepository
from family_bot.services.gateway import PersistenceGateway
from family_bot.services.llm import OpenAiLlmClient
from family_bot.services.mirror import GoogleSheetsClient, SheetsMirror
from family_bot.services.notifications import NotificationFanout
from family_bot.services.outbox import MessageSender, PostCommitProcessor
from family_bot.services.pipeline import MessagePipeline
from family_bot.services.setup_wizard import NotificationSetupWizard
from services.ai_service import create_classifier, create_llm_client
from storage.bootstrap import get_outbox_repo, get_records_repo, get_settings_repo, get_users_repo


@dataclass
class AppServices:
    pipeline: MessagePipeline
    processor: PostCommitProcessor
    wizard: NotificationSetupWizard
    llm: OpenAiLlmClient
    records: TableRecordRepository
    users: TableUsersRepository
    settings: TableNotificationSettingsRepository


def build_app_services(bot: Optional[MessageSender]) -> AppServices:
    """Собирает сервисы поверх общего хранилища. bot=None — уведомления не отправляются."""
    records = get_records_repo()
    users = get_users_repo()
    settings = get_settings_repo()
    sheets = GoogleSheetsClient.from_config()
    llm = create_llm_client()

    processor = PostCommitProcessor(
        get_outbox_repo(),
        bot,
        sheets,
        max_attempts=OUTBOX_MAX_ATTEMPTS,
    )
    pipeline = MessagePipeline(
        create_classifier(llm),
        PersistenceGateway(records),
        NotificationFanout(settings),
        SheetsMirror(users, sheets),
        processor,
    )
    return AppServices(
        pipeline=pipeline,
        processor=processor,
        wizard=NotificationSetupWizard(users, settings, PROJECTS),
        llm=llm,
        records=records,
        users=users,
        settings=settings,
    )
