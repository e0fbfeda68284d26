"""
Инициализация ИИ: клиент модели и классификатор сообщений.

Создание инстансов вынесено сюда, чтобы app.py и api.main не знали деталей
конфигурации AI.
"""

from config import PROJECTS
from family_bot.services.classifier import LlmClassifier
from family_bot.services.llm import OpenAiLlmClient


def create_llm_client() -> OpenAiLlmClient:
    """Клиент OpenAI/OpenRouter из переменных окружения."""
    return OpenAiLlmClient.from_config()


def create_classifier(client: OpenAiLlmClient) -> LlmClassifier:
    return LlmClassifier(client, projects=PROJECTS)
