"""
API семейного помощника: вебхук Telegram и данные для дашборда (Mini App).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from aiogram import Bot, Dispatcher
from aiogram.types import Update
from aiogram.utils.web_app import safe_parse_webapp_init_data
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config import BOT_TOKEN, LOG_LEVEL, TIMEZONE, WEBHOOK_PATH, WEBHOOK_URL
from family_bot.models import HOOKED_KINDS, RECORD_KINDS, NotificationSetting, Record
from family_bot.services.analytics import PERIOD_DAYS, build_analytics
from family_bot.services.normalizer import normalize
from services import AppServices, build_app_services, create_scheduler_service
from storage import init_db
from storage.bootstrap import get_database_provider, get_table_store

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Family Assistant API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class _State:
    """Бот, диспетчер и сервисы процесса API (создаются при старте)."""

    bot: Optional[Bot] = None
    dp: Optional[Dispatcher] = None
    services: Optional[AppServices] = None
    scheduler: Any = None


state = _State()


# === МОДЕЛИ ===

class RecordIn(BaseModel):
    type: str
    description: str = ""
    project: Optional[str] = None
    amount: Optional[Union[str, float, int]] = None
    currency: Optional[str] = None
    date: Optional[str] = None
    money_source: Optional[str] = None
    budgetFrom: Optional[str] = None
    person: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    dueDate: Optional[str] = None
    repeatType: Optional[str] = None
    repeatUntil: Optional[str] = None
    remindAt: Optional[str] = None
    link: Optional[str] = None
    file: Optional[str] = None
    telegramChatId: Optional[str] = None


class SubmitResult(BaseModel):
    success: bool
    message: str
    record: Optional[Dict[str, Any]] = None


class NotificationSettingIn(BaseModel):
    project: str
    notify_personal: bool = True
    chats: Dict[str, List[str]] = Field(default_factory=dict)
    channels: Dict[str, List[str]] = Field(default_factory=dict)


# === ЗАВИСИМОСТИ ===

def get_services() -> AppServices:
    if state.services is None:
        # API без бота: уведомления копятся в outbox как failed до появления бота
        state.services = build_app_services(state.bot)
    return state.services


def get_user_id(
    x_user_id: Optional[str] = Header(None),
    x_telegram_init_data: Optional[str] = Header(None),
) -> str:
    """Пользователь из подписанного initData Mini App или из X-User-Id."""
    if x_telegram_init_data and BOT_TOKEN:
        try:
            data = safe_parse_webapp_init_data(token=BOT_TOKEN, init_data=x_telegram_init_data)
        except ValueError:
            raise HTTPException(status_code=401, detail="Неверная подпись initData")
        if data.user is not None:
            return str(data.user.id)
    if x_user_id:
        return x_user_id
    raise HTTPException(status_code=401, detail="Нужен заголовок X-User-Id")


def now_local() -> datetime:
    return datetime.now(ZoneInfo(TIMEZONE))


# === ЖИЗНЕННЫЙ ЦИКЛ ===

@app.on_event("startup")
async def startup():
    await init_db(get_database_provider())
    if not (BOT_TOKEN and WEBHOOK_URL):
        logger.info("Вебхук не настроен: API работает без бота")
        return

    # Импорт здесь: family_bot.app настраивает хендлеры и нужен только в режиме вебхука
    from family_bot.app import create_bot, create_dispatcher

    state.bot = create_bot()
    state.services = build_app_services(state.bot)
    state.dp = create_dispatcher(state.bot, state.services)
    state.scheduler = create_scheduler_service(state.bot, state.services.processor)
    state.scheduler.start()
    logger.info("Бот работает через вебхук %s%s", WEBHOOK_URL, WEBHOOK_PATH)


@app.on_event("shutdown")
async def shutdown():
    if state.scheduler is not None:
        state.scheduler.shutdown()
    if state.bot is not None:
        await state.bot.session.close()


@app.get("/api/health")
async def health():
    """Health-check для nginx/мониторинга: приложение поднято и БД доступна."""
    try:
        await get_table_store().select("users", limit=1)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"DB error: {e}")

    llm_ready = state.services.llm.is_configured if state.services else None
    return {
        "status": "ok",
        "db": "ok",
        "bot": state.bot is not None,
        "ai_client": llm_ready,
    }


# === ВЕБХУК ===

@app.post(WEBHOOK_PATH)
async def telegram_webhook(request: Request):
    """Обновление Telegram → Dispatcher. Telegram всегда получает ok, иначе будет повторять."""
    if state.bot is None or state.dp is None:
        logger.warning("Обновление пришло, но бот не запущен")
        return {"ok": True}
    try:
        body = await request.json()
        update = Update.model_validate(body, context={"bot": state.bot})
        await state.dp.feed_update(state.bot, update)
    except Exception:
        logger.exception("Ошибка обработки обновления Telegram")
    return {"ok": True}


# === ЗАПИСИ ===

@app.post("/api/submit", response_model=SubmitResult)
async def submit_record(
    body: RecordIn,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
):
    """Запись из формы дашборда — тот же путь, что у записи из чата."""
    if body.type.lower() not in RECORD_KINDS:
        raise HTTPException(status_code=400, detail=f"type должен быть одним из: {', '.join(RECORD_KINDS)}")

    user = await services.users.load_context(user_id)
    data = normalize(body.model_dump(exclude_none=True), user_id, aliases=user.aliases, now=now_local())
    record = Record.from_payload(data, owner_chat_id=user_id)

    result = await services.pipeline.submit(record)
    if result.saved:
        await services.pipeline.run_post_commit(result)
    return SubmitResult(
        success=result.saved,
        message="Данные сохранены" if result.saved else "Ошибка сохранения",
        record=record.to_dict() if result.saved else None,
    )


@app.get("/api/records")
async def list_records(
    kind: str = Query(...),
    project: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
):
    if kind not in RECORD_KINDS:
        raise HTTPException(status_code=400, detail=f"kind должен быть одним из: {', '.join(RECORD_KINDS)}")
    return await services.records.list_records(kind, owner_chat_id=user_id, project=project, limit=limit)


@app.get("/api/recent")
async def recent_records(
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
):
    """Последние транзакции, задачи и идеи вместе, новые сверху."""
    return await services.records.list_recent(HOOKED_KINDS, limit=limit, owner_chat_id=user_id)


@app.get("/api/analytics")
async def analytics(
    project: Optional[str] = None,
    period: str = "week",
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
):
    if period not in PERIOD_DAYS:
        raise HTTPException(status_code=400, detail=f"period должен быть одним из: {', '.join(PERIOD_DAYS)}")
    if project == "all":
        project = None
    return await build_analytics(
        services.records,
        period=period,
        today=now_local().date(),
        owner_chat_id=user_id,
        project=project,
    )


# === НАСТРОЙКИ УВЕДОМЛЕНИЙ ===

@app.get("/api/settings")
async def get_settings(
    project: Optional[str] = None,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
):
    if project:
        setting = await services.settings.get(user_id, project)
        if setting is None:
            setting = NotificationSetting(owner_chat_id=user_id, project=project)
        return setting.to_dict()
    return [s.to_dict() for s in await services.settings.list_for_owner(user_id)]


@app.post("/api/settings")
async def save_settings(
    body: NotificationSettingIn,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
):
    unknown = (set(body.chats) | set(body.channels)) - set(HOOKED_KINDS)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Неизвестные виды записей: {', '.join(sorted(unknown))}")

    setting = NotificationSetting(
        owner_chat_id=user_id,
        project=body.project,
        notify_personal=body.notify_personal,
        chats={k: [str(x).strip() for x in v if str(x).strip()] for k, v in body.chats.items()},
        channels={k: [str(x).strip() for x in v if str(x).strip()] for k, v in body.channels.items()},
    )
    await services.settings.save(setting)
    logger.info("Настройки уведомлений %s/%s сохранены через API", user_id, body.project)
    return {"success": True, "setting": setting.to_dict()}
