import asyncio
import logging
import time
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from fastapi import FastAPI, Request
from app.core.config import Settings, get_settings
from app.core.db import Database
from app.core.errors import install_exception_handlers
from app.core.logging import setup_logging, request_id_ctx
from app.api.router import api_router
from app.modules.audit.service import AuditRecorder, DeadLetterSink
from app.modules.auth.tokens import TokenService
from app.modules.retention.policy import RetentionPolicy
from app.modules.retention.runner import run_retention_sweeps
from app.modules.retention.service import RetentionService
from app.platform.provider_registry import ProviderRegistry

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)
    app = FastAPI(title=settings.APP_NAME)

    # store handles are built here and handed to whoever needs them
    db = Database(settings)
    providers = ProviderRegistry(settings)
    audit = AuditRecorder(db.sessionmaker, DeadLetterSink(settings.AUDIT_DEAD_LETTER_PATH),
                          timeout=settings.STORE_TIMEOUT_SECONDS)
    app.state.settings = settings
    app.state.db = db
    app.state.providers = providers
    app.state.audit = audit
    app.state.tokens = TokenService(
        settings.JWT_SECRET,
        ttl=timedelta(days=settings.TOKEN_TTL_DAYS),
        algorithm=settings.JWT_ALG,
        clock_skew=timedelta(seconds=settings.TOKEN_CLOCK_SKEW_SECONDS),
    )
    app.state.retention = RetentionService(db.sessionmaker, audit, providers.notifier(),
                                           RetentionPolicy.from_settings(settings))

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = request.headers.get("x-request-id", "-")
        request_id_ctx.set(rid)
        response = await call_next(request)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000
        logger.info(
            f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {process_time:.2f}ms"
        )
        return response

    install_exception_handlers(app, settings)

    @app.on_event("startup")
    async def on_startup():
        await db.init_models()
        if settings.RETENTION_SWEEP_ENABLED:
            app.state.retention_task = asyncio.create_task(
                run_retention_sweeps(app.state.retention, settings.RETENTION_SWEEP_INTERVAL_SECONDS))

    @app.on_event("shutdown")
    async def on_shutdown():
        task = getattr(app.state, "retention_task", None)
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await providers.close()
        await db.dispose()

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


app = create_app()
