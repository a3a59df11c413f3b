"""HTTP surface of the affiliate backend.

``create_app()`` builds the FastAPI application: CORS, request logging,
error payloads, the ``/api`` routers and a startup hook that prepares the
database and the default administrator.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from affiliate.services.users import ensure_admin
from api.middleware import RequestLoggingMiddleware
from api.routers import api_router
from core.config import get_settings
from core.db import SessionFactory, init_db
from core.errors import register_exception_handlers
from core.logging_setup import configure_logging

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    if settings.auto_create_schema:
        await init_db()
    if settings.admin_default_email and settings.admin_default_password:
        async with SessionFactory() as session:
            await ensure_admin(
                session,
                settings.admin_default_email,
                settings.admin_default_password,
                name=settings.admin_default_name,
            )
    logger.info("Affiliate API started")
    yield
    logger.info("Affiliate API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Affiliate Platform API",
        description="Affiliate links, click and conversion tracking, commissions and payouts",
        version="1.0.0",
        lifespan=lifespan,
    )

    origins = settings.cors_origin_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Browsers reject credentials with a wildcard origin
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "OK", "message": "Affiliate API is running"}

    return app
