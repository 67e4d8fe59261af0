"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from zoneinfo import ZoneInfo

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.email.logging_provider import LoggingEmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.verification.memory_store import InMemoryVerificationStore
from infrastructure.verification.redis_store import RedisVerificationStore
from repositories.notification_store import NotificationStore
from repositories.task_feed import MongoTaskFeed
from routes.health_routes import router as health_router
from routes.notification_routes import router as notification_router
from routes.task_routes import router as task_router
from routes.verification_routes import router as verification_router
from services.task_notification_scheduler import TaskNotificationScheduler
from services.verification_service import VerificationCodeManager
from shared.logging import get_logger, setup_logging
from workers.reminder_dispatcher import ReminderDispatcher

log = get_logger(__name__)


def build_email_provider(settings: AppSettings, http_client: HttpClient):
    """ZeptoMail when a token is configured, otherwise the logging mock."""
    if settings.email.is_configured:
        return ZeptoMailProvider(
            settings.email,
            http_client,
            app_url=settings.app_url,
            code_ttl_minutes=settings.verification.verification_code_ttl_seconds // 60,
        )
    log.warning("email_provider_mock", reason="zepto_api_token_not_configured")
    return LoggingEmailProvider(log_codes=settings.expose_verification_codes)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging.log_level, settings.logging.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings

        # Redis is optional; verification records fall back to process memory
        redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client

        ttl = settings.verification.verification_code_ttl_seconds
        if redis_client is not None:
            record_store = RedisVerificationStore(redis_client, retention_seconds=ttl * 2)
        else:
            record_store = InMemoryVerificationStore()

        http_client = HttpClient(timeout=settings.db.store_timeout_seconds)
        email_provider = build_email_provider(settings, http_client)
        app.state.email_provider = email_provider

        app.state.verification_manager = VerificationCodeManager(
            record_store,
            email_provider,
            ttl_seconds=ttl,
            max_attempts=settings.verification.verification_max_attempts,
            expose_codes=settings.expose_verification_codes,
        )

        timeout = settings.db.store_timeout_seconds
        notification_store = NotificationStore(db["notifications"], timeout=timeout)
        await notification_store.ensure_indexes()
        app.state.notification_store = notification_store

        tz = ZoneInfo(settings.scheduler.scheduler_timezone)
        app.state.task_scheduler = TaskNotificationScheduler(
            notification_store,
            reminder_hour=settings.scheduler.reminder_hour,
            tz=tz,
        )

        dispatcher = None
        if settings.scheduler.dispatcher_enabled:
            dispatcher = ReminderDispatcher(
                MongoTaskFeed(db["users"], db["tasks"], timeout=timeout),
                email_provider,
                interval_seconds=settings.scheduler.dispatcher_interval_seconds,
                tz=tz,
                summary_weekday=(
                    settings.scheduler.summary_weekday
                    if settings.scheduler.weekly_summary_enabled
                    else None
                ),
                summary_hour=settings.scheduler.reminder_hour,
            )
            dispatcher.start()
        app.state.dispatcher = dispatcher

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        if dispatcher is not None:
            await dispatcher.stop()
        await http_client.aclose()
        await mongo_client.close()
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(verification_router)
    app.include_router(notification_router)
    app.include_router(task_router)

    return app
