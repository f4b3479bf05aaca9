from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import build_container
from .logging import configure_logging
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.error_handlers import register_exception_handlers
from ..presentation.api.rate_limit import RateLimitMiddleware
from ..presentation.api.routers import admin as admin_router
from ..presentation.api.routers import auth as auth_router

logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    settings = Settings()

    app = FastAPI(title="Agency Dashboard Auth", lifespan=_create_lifespan(settings))

    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_max,
        auth_max_requests=settings.auth_rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        persistence = SQLitePersistence(settings.database_path)
        container = build_container(settings, persistence)
        container.admin_service.ensure_default_admin(
            settings.admin_default_email, settings.admin_default_password
        )

        app.state.container = container  # type: ignore[attr-defined]

        container.dispatcher.start()
        await container.expiry_sweeper.start()
        logger.info("Application started; database at %s", settings.database_path)

        try:
            yield
        finally:
            await container.expiry_sweeper.stop()
            container.dispatcher.stop()
            persistence.close()

    return lifespan
