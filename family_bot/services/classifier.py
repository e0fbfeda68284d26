"""
Классификатор сообщений через ИИ.

Сообщение пользователя → либо обычный ответ (TextReply), либо запись в JSON
(DataReply): транзакция, задача, идея или напоминание. Любая ошибка модели или
разбора превращается в текстовый ответ — наружу исключения не выходят.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Iterable, Optional

from family_bot.models import RECORD_KINDS, ClassifierResult, DataReply, TextReply
from family_bot.services.llm import ChatClient, LlmNotConfiguredError


logger = logging.getLogger(__name__)

APOLOGY = "Извините, произошла ошибка при обработке сообщения."
NOT_CONFIGURED = "😕 ИИ пока не настроен — не могу разобрать сообщение."
CLARIFY = "Хочешь, я сохраню это как транзакцию, задачу, идею или напоминание?"

SYSTEM_PROMPT = """Ты — семейный цифровой помощник. Помогаешь в повседневных делах: записываешь важное, напоминаешь, ведёшь учёт и просто поддерживаешь разговор.

Твоя основная задача — понять, когда сообщение нужно СОХРАНИТЬ как запись:
- транзакция (расход или доход),
- задача,
- идея,
- напоминание.

Если сообщение однозначно относится к одной из этих категорий — верни ТОЛЬКО JSON-объект:

{
  "type": "transaction" | "task" | "idea" | "reminder",
  "project": string,
  "amount": string,
  "money_source": string,
  "description": string,
  "date": string,
  "person": string,
  "status": string,
  "priority": "high" | "medium" | "low",
  "telegramChatId": string,
  "repeatType": string,
  "repeatUntil": string,
  "remindAt": string,
  "link": string,
  "file": string
}

Никогда не смешивай JSON и обычный текст: либо только JSON, либо обычный ответ.
Если пользователь размышляет, шутит или задаёт вопрос — не сохраняй, просто ответь по-человечески.
Если сообщение неоднозначное — уточни: «Хочешь, я сохраню это как идею, задачу или ты просто делишься мыслями?»
Если сумма и описание есть, а проект не указан или не распознан — спроси, для какого проекта записать.

Правила транзакций:
- сумма всегда строкой со знаком: доходы "+2000", расходы "-500";
- доход: получил, поступило, доход, прибыль;
- расход: потратил, оплатил, купил, заплатил, списали;
- money_source — откуда деньги (карта, наличные, бюджет проекта), если сказано.

Правила повторяющихся задач:
- ежедневно → "repeatType": "ежедневно";
- еженедельно → "repeatType": "еженедельно";
- ежемесячно → "repeatType": "ежемесячно";
- «до 15 числа» → ещё и "repeatUntil" с датой этого числа.

Напоминания: «Напомни через 2 часа забрать посылку» → "type": "reminder", "description": "забрать посылку через 2 часа".

Всегда добавляй в JSON telegramChatId и date из вводных ниже.

Возможные project: {projects}
Возможные person: {persons}"""


_FENCE_RE = re.compile(r"^```\w*\s*|\s*```\s*$")


def build_system_prompt(projects: Iterable[str], persons: Iterable[str]) -> str:
    projects_text = ", ".join(projects) or "любой, который назовёт пользователь"
    persons_text = ", ".join(persons) or "нет известных людей"
    return SYSTEM_PROMPT.replace("{projects}", projects_text).replace("{persons}", persons_text)


def build_user_message(text: str, today: date, chat_id: str) -> str:
    return f"Сообщение: {text}\nДата: {today.isoformat()}\nTelegram Chat ID: {chat_id}"


def parse_reply(raw: Optional[str]) -> ClassifierResult:
    """
    Разобрать ответ модели в TextReply / DataReply.

    JSON-ом считается только ответ вида «{ … }» (после снятия ```-обёртки);
    не разобралось или не объект — это текст. JSON без известного type
    означает, что модель не уверена, — переспрашиваем пользователя.
    """
    text = (raw or "").strip()
    if not text:
        return TextReply(APOLOGY)

    candidate = _FENCE_RE.sub("", text).strip() if text.startswith("```") else text
    if not (candidate.startswith("{") and candidate.endswith("}")):
        return TextReply(text)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning("Ответ ИИ похож на JSON, но не разобран: %s", e)
        return TextReply(text)

    if not isinstance(data, dict):
        return TextReply(text)

    kind = str(data.get("type") or "").strip().lower()
    if kind not in RECORD_KINDS:
        logger.info("JSON без известного type: %r — переспрашиваем", data.get("type"))
        return TextReply(CLARIFY)

    data["type"] = kind
    return DataReply(data)


class LlmClassifier:
    """Классификатор сообщений поверх ChatClient."""

    def __init__(
        self,
        client: ChatClient,
        *,
        projects: Iterable[str] = (),
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> None:
        self._client = client
        self._projects = list(projects)
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def classify(
        self,
        text: str,
        chat_id: str,
        *,
        today: date,
        persons: Iterable[str] = (),
    ) -> ClassifierResult:
        """Классифицировать сообщение. Никогда не бросает исключений."""
        messages = [
            {"role": "system", "content": build_system_prompt(self._projects, persons)},
            {"role": "user", "content": build_user_message(text, today, chat_id)},
        ]
        try:
            raw = await self._client.chat(
                messages,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except LlmNotConfiguredError:
            logger.warning("Классификация пропущена: ИИ не настроен")
            return TextReply(NOT_CONFIGURED)
        except Exception:  # noqa: BLE001
            logger.exception("Ошибка классификации сообщения")
            return TextReply(APOLOGY)

        result = parse_reply(raw)
        logger.info("Сообщение чата %s классифицировано как %s", chat_id, result.type)
        return result
