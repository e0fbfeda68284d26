"""
Мастер настройки уведомлений (/notify).

Шаги: проект → вид записи → дополнительные чаты → каналы → личные уведомления.
Текущий шаг и ответы лежат в users.meta["wizard"], поэтому мастер переживает
перезапуск бота и не зависит от процесса, который принял сообщение.
"""

from __future__ import annotations

import logging
import re
from html import escape
from typing import Any, Iterable

from family_bot.models import HOOKED_KINDS, NotificationSetting, UserContext
from family_bot.repositories.settings import NotificationSettingsRepository
from family_bot.repositories.users import UsersRepository
from family_bot.services.formatters import KIND_TITLES


logger = logging.getLogger(__name__)

STEP_PROJECT = "project"
STEP_KIND = "kind"
STEP_CHATS = "chats"
STEP_CHANNELS = "channels"
STEP_PERSONAL = "personal"

CANCEL_WORDS = {"отмена", "стоп"}
EMPTY_WORDS = {"-", "нет", "пусто", "никого"}
YES_WORDS = {"да", "yes", "+", "ага", "угу"}
NO_WORDS = {"нет", "no", "-"}

_SPLIT_RE = re.compile(r"[\s,;]+")


def parse_targets(text: str) -> list[str]:
    """«-100123, @channel» → ["-100123", "@channel"]; «-» или «нет» → []."""
    value = text.strip()
    if value.lower() in EMPTY_WORDS:
        return []
    return [part for part in _SPLIT_RE.split(value) if part]


class NotificationSetupWizard:
    def __init__(
        self,
        users_repo: UsersRepository,
        settings_repo: NotificationSettingsRepository,
        projects: Iterable[str],
    ) -> None:
        self._users = users_repo
        self._settings = settings_repo
        self._projects = list(projects)

    @staticmethod
    def is_active(context: UserContext) -> bool:
        return context.profile.wizard is not None

    @staticmethod
    def current_step(context: UserContext) -> str | None:
        state = context.profile.wizard
        return state.get("step") if state else None

    async def _save_state(self, context: UserContext, state: dict[str, Any] | None) -> None:
        meta = dict(context.profile.meta)
        if state is None:
            meta.pop("wizard", None)
        else:
            meta["wizard"] = state
        context.profile.meta = meta
        await self._users.save_meta(context.chat_id, meta)

    async def start(self, context: UserContext) -> str:
        await self._save_state(context, {"step": STEP_PROJECT})
        projects = ", ".join(self._projects) or "любой"
        return (
            "🔔 <b>Настройка уведомлений</b>\n\n"
            f"Для какого проекта? Варианты: {projects}\n\n"
            "Напиши «отмена» или /cancel, чтобы выйти."
        )

    async def cancel(self, context: UserContext) -> str:
        await self._save_state(context, None)
        return "Настройка уведомлений отменена."

    async def choose_kind(self, kind: str, context: UserContext) -> str:
        """Выбор вида записи (кнопка или текст)."""
        state = dict(context.profile.wizard or {})
        if state.get("step") != STEP_KIND:
            return "Начни настройку заново: /notify"
        if kind not in HOOKED_KINDS:
            return "Выбери: транзакции, задачи или идеи."
        state.update(step=STEP_CHATS, kind=kind)
        await self._save_state(context, state)
        return (
            f"Куда ещё отправлять {KIND_TITLES[kind]}? "
            "Перечисли chat_id через запятую или «-», если никуда."
        )

    async def handle(self, text: str, context: UserContext) -> str:
        """Ответ пользователя на текущем шаге мастера."""
        state = dict(context.profile.wizard or {})
        step = state.get("step")
        answer = (text or "").strip()

        if answer.lower() in CANCEL_WORDS:
            return await self.cancel(context)

        if step == STEP_PROJECT:
            project = self._match_project(answer)
            if not project:
                return "Не знаю такого проекта. Варианты: " + ", ".join(self._projects)
            state.update(step=STEP_KIND, project=project)
            await self._save_state(context, state)
            return f"Проект {escape(project)}. Для каких записей настраиваем: транзакции, задачи или идеи?"

        if step == STEP_KIND:
            kind = self._match_kind(answer)
            if kind is None:
                return "Выбери: транзакции, задачи или идеи."
            return await self.choose_kind(kind, context)

        if step == STEP_CHATS:
            state.update(step=STEP_CHANNELS, chats=parse_targets(answer))
            await self._save_state(context, state)
            return "А в какие каналы? Например @family_news, или «-»."

        if step == STEP_CHANNELS:
            state.update(step=STEP_PERSONAL, channels=parse_targets(answer))
            await self._save_state(context, state)
            return "Присылать личное уведомление исполнителю задачи? (да/нет)"

        if step == STEP_PERSONAL:
            lowered = answer.lower()
            if lowered not in YES_WORDS and lowered not in NO_WORDS:
                return "Ответь «да» или «нет»."
            state["notify_personal"] = lowered in YES_WORDS
            setting = await self._finish(state, context)
            return self._summary(setting, state["kind"])

        logger.warning("Неизвестный шаг мастера %r у %s", step, context.chat_id)
        return await self.cancel(context)

    async def _finish(self, state: dict[str, Any], context: UserContext) -> NotificationSetting:
        project = state["project"]
        kind = state["kind"]
        setting = await self._settings.get(context.chat_id, project) or NotificationSetting(
            owner_chat_id=context.chat_id,
            project=project,
        )
        setting.chats = {**setting.chats, kind: list(state.get("chats", []))}
        setting.channels = {**setting.channels, kind: list(state.get("channels", []))}
        setting.notify_personal = bool(state.get("notify_personal", True))
        await self._settings.save(setting)
        await self._save_state(context, None)
        logger.info("Настройки уведомлений %s/%s сохранены", context.chat_id, project)
        return setting

    def _summary(self, setting: NotificationSetting, kind: str) -> str:
        chats = escape(", ".join(setting.chats.get(kind, []))) or "—"
        channels = escape(", ".join(setting.channels.get(kind, []))) or "—"
        personal = "да" if setting.notify_personal else "нет"
        return (
            f"✅ Готово! Проект {escape(setting.project)}, {KIND_TITLES[kind]}:\n"
            f"Чаты: {chats}\nКаналы: {channels}\nЛично исполнителю: {personal}"
        )

    def _match_project(self, answer: str) -> str | None:
        for project in self._projects:
            if project.lower() == answer.lower():
                return project
        return None if self._projects else answer or None

    @staticmethod
    def _match_kind(answer: str) -> str | None:
        lowered = answer.lower()
        if lowered in HOOKED_KINDS:
            return lowered
        for kind, title in KIND_TITLES.items():
            if kind in HOOKED_KINDS and lowered.startswith(title[:3]):
                return kind
        return None
