"""
Клиент языковой модели: чат-запросы и распознавание голоса.

OpenAI напрямую (OPENAI_API_KEY) или OpenRouter (OPENROUTER_API_KEY) через
совместимый API. Повторов нет: ошибка SDK уходит вызывающему коду, а
классификатор превращает её в текстовый ответ-извинение.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from openai import AsyncOpenAI

import config


logger = logging.getLogger(__name__)


class LlmError(Exception):
    """Base error for LLM client issues."""


class LlmNotConfiguredError(LlmError):
    """Raised when LLM client is not configured (no API key)."""


class ChatClient(Protocol):
    """Минимальный интерфейс чат-модели для классификатора."""

    async def chat(
        self,
        messages: List[Dict[str, str]],
        *,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> str: ...


class OpenAiLlmClient:
    """
    Чат и транскрибация через openai SDK.

    Клиент создаётся лениво при первом запросе, чтобы импорт модуля
    не требовал ключей.
    """

    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        *,
        openai_api_key: str = "",
        openrouter_api_key: str = "",
        model: str = "",
        transcribe_model: str = "whisper-1",
        timeout: float = 0,
    ) -> None:
        self._openai_key = openai_api_key
        self._openrouter_key = openrouter_api_key
        self._model = model
        self._transcribe_model = transcribe_model
        self._timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    @classmethod
    def from_config(cls) -> "OpenAiLlmClient":
        return cls(
            openai_api_key=config.OPENAI_API_KEY,
            openrouter_api_key=config.OPENROUTER_API_KEY,
            model=config.AI_MODEL,
            transcribe_model=config.AI_TRANSCRIBE_MODEL,
            timeout=config.AI_TIMEOUT,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._openai_key or self._openrouter_key)

    @property
    def can_transcribe(self) -> bool:
        # У OpenRouter нет Whisper-эндпоинта
        return bool(self._openai_key)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        kwargs: Dict[str, Any] = {}
        if self._timeout:
            kwargs["timeout"] = httpx.Timeout(self._timeout)
        if self._openai_key:
            self._client = AsyncOpenAI(api_key=self._openai_key, **kwargs)
        elif self._openrouter_key:
            self._client = AsyncOpenAI(
                api_key=self._openrouter_key,
                base_url=self.OPENROUTER_BASE_URL,
                default_headers={"X-Title": "Family Assistant"},
                **kwargs,
            )
        else:
            raise LlmNotConfiguredError("LLM client is not configured")
        return self._client

    def _select_model(self) -> str:
        if self._model:
            return self._model
        if not self._openai_key and self._openrouter_key:
            return "openai/gpt-4o-mini"
        return "gpt-4o-mini"

    async def chat(
        self,
        messages: List[Dict[str, str]],
        *,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> str:
        """Выполнить чат-запрос к модели и вернуть текст ответа."""
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self._select_model(),
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        content = response.choices[0].message.content or ""
        return content.strip()

    async def transcribe(self, audio: bytes, filename: str = "voice.ogg", language: str = "ru") -> str:
        """Распознать голосовое сообщение (Whisper)."""
        if not self.can_transcribe:
            raise LlmNotConfiguredError("Распознавание голоса требует OPENAI_API_KEY")
        client = self._get_client()
        result = await client.audio.transcriptions.create(
            model=self._transcribe_model,
            file=(filename, audio),
            language=language,
        )
        text = (result.text or "").strip()
        logger.info("Голос распознан: %d символов", len(text))
        return text
