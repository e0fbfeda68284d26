"""Сервисы бота: AI, конвейер сообщений, scheduler — фабрики инициализации."""

from services.ai_service import create_classifier, create_llm_client
from services.pipeline_service import AppServices, build_app_services
from services.scheduler_service import create_scheduler_service

__all__ = [
    "AppServices",
    "build_app_services",
    "create_classifier",
    "create_llm_client",
    "create_scheduler_service",
]
