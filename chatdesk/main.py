"""FastAPI application for the chatdesk support backend."""

import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, Deque, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from chatdesk import settings
from chatdesk.admin.codes import OneTimeCodeManager
from chatdesk.admin.routes import router as routerAdmin
from chatdesk.bot.handler import CommandProcessor, max_rss_mb
from chatdesk.bot.notifier import AdminNotifier
from chatdesk.bot.routes import router as routerBot
from chatdesk.bot.tg import TelegramBot
from chatdesk.chat.escalation import EscalationRouter
from chatdesk.chat.matcher import KnowledgeBaseMatcher, load_knowledge_base
from chatdesk.chat.routes import router as routerChat
from chatdesk.llm import create_completion_provider
from chatdesk.logger import root_logger
from chatdesk.storage import AdminSessionStore, AnalyticsCounters, LockedFileStore, MessageLog

log = root_logger.debug

_UNSET: Any = object()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Ограничение частоты запросов: не больше max_requests за скользящее окно на клиента."""

    def __init__(self, app, *, path_prefix: str, max_requests: int, window_seconds: float) -> None:
        super().__init__(app)
        self.path_prefix = path_prefix
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = time.monotonic()

    def _client_key(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def _sweep(self, now: float) -> None:
        """Удаляет клиентов, у которых за окно не осталось запросов."""
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        now = time.monotonic()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        key = self._client_key(request)
        hits = self._hits.setdefault(key, deque())
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

        if len(hits) >= self.max_requests:
            log(f"🚦 Rate limit для {key}: {len(hits)} запросов за {self.window_seconds:g}с")
            return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content={"error": "Too many requests"})

        hits.append(now)
        return await call_next(request)


def create_app(
    *,
    database_path: str = settings.DATABASE_PATH,
    knowledge_base_path: str | None = settings.KNOWLEDGE_BASE_PATH,
    completion: Any = _UNSET,
    telegram: Any = _UNSET,
    admin_telegram_id: str | None = settings.ADMIN_TELEGRAM_ID,
    rate_limit_requests: int = settings.RATE_LIMIT_REQUESTS,
    rate_limit_window_seconds: float = settings.RATE_LIMIT_WINDOW_SECONDS,
) -> FastAPI:
    """
    Собирает приложение и все сервисы с состоянием.

    Сервисы создаются один раз и живут в app.state, роуты берут их оттуда.

    Args:
        database_path: Префикс файлов хранилища
        knowledge_base_path: JSON с шаблонами базы знаний
        completion: Провайдер LLM (None - без эскалации к AI), по умолчанию из настроек
        telegram: Отправитель сообщений Telegram (None - без бота), по умолчанию из настроек
        admin_telegram_id: Telegram ID администратора
        rate_limit_requests: Лимит запросов к /api/chat/ на клиента за окно
        rate_limit_window_seconds: Длина окна лимита

    Returns:
        Настроенное FastAPI приложение
    """
    if completion is _UNSET:
        completion = create_completion_provider()
    if telegram is _UNSET:
        telegram = TelegramBot(settings.TELEGRAM_BOT_TOKEN) if settings.TELEGRAM_BOT_TOKEN else None
        if telegram is None:
            root_logger.warning("Telegram bot token not provided, admin login and notifications disabled")

    store = LockedFileStore(database_path)
    store.ensure_initialized()
    message_log = MessageLog(store)
    analytics = AnalyticsCounters(store)
    admin_sessions = AdminSessionStore(store)

    matcher = KnowledgeBaseMatcher(load_knowledge_base(knowledge_base_path), threshold=settings.CONFIDENCE_THRESHOLD)
    notifier = AdminNotifier(telegram, admin_telegram_id) if telegram is not None else None
    escalation_router = EscalationRouter(message_log, analytics, matcher, completion=completion, notifier=notifier)

    started_at = time.monotonic()
    command_processor = None
    if telegram is not None:
        command_processor = CommandProcessor(telegram, analytics, admin_telegram_id, started_at)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        root_logger.info(
            f"🚀 chatdesk started: environment={settings.ENVIRONMENT}, "
            f"openai={completion is not None}, telegram={telegram is not None}"
        )
        if isinstance(telegram, TelegramBot) and settings.PUBLIC_URL:
            await telegram.set_webhook(f"{settings.PUBLIC_URL.rstrip('/')}{settings.WEBHOOK_PATH}")

        yield

        log("🛑 Shutting down chatdesk...")
        if telegram is not None and hasattr(telegram, "close"):
            await telegram.close()
        if completion is not None and hasattr(completion, "close"):
            await completion.close()
        log("✅ chatdesk shut down successfully")

    app = FastAPI(
        title="chatdesk",
        version="1.0.0",
        description="Customer support chat backend with keyword knowledge base and AI escalation",
        lifespan=lifespan,
    )

    app.state.store = store
    app.state.message_log = message_log
    app.state.analytics = analytics
    app.state.admin_sessions = admin_sessions
    app.state.matcher = matcher
    app.state.escalation_router = escalation_router
    app.state.admin_notifier = notifier
    app.state.command_processor = command_processor
    app.state.login_codes = OneTimeCodeManager(
        ttl_ms=int(settings.AUTH_CODE_TTL_MINUTES * 60 * 1000),
        max_attempts=settings.AUTH_CODE_MAX_ATTEMPTS,
    )
    app.state.admin_telegram_id = admin_telegram_id
    app.state.session_ttl_ms = int(settings.SESSION_TTL_HOURS * 60 * 60 * 1000)
    app.state.active_window_ms = int(settings.ACTIVE_CONVERSATION_MINUTES * 60 * 1000)
    app.state.started_at = started_at

    app.add_middleware(
        RateLimitMiddleware,
        path_prefix="/api/chat/",
        max_requests=rate_limit_requests,
        window_seconds=rate_limit_window_seconds,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"{field}: {message}" if field else message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        root_logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(routerChat)
    app.include_router(routerAdmin)
    app.include_router(routerBot)

    @app.get("/ping")
    async def ping():
        """Liveness probe"""
        return {
            "ok": True,
            "timestamp": int(time.time() * 1000),
            "uptime": round(time.monotonic() - started_at, 3),
            "memory": {"maxRssMb": max_rss_mb()},
            "environment": settings.ENVIRONMENT,
            "services": {
                "openai": completion is not None,
                "telegram": telegram is not None,
            },
        }

    return app


app = create_app()
