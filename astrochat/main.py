from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from astrochat import __version__
from astrochat.container import build_services
from astrochat.core.errors import DomainError, domain_error_handler
from astrochat.core.logger import setup_logger
from astrochat.core.middleware.validation import ValidationNormalizeMiddleware
from astrochat.core.security.password_hasher import PasswordHasher
from astrochat.core.settings import Settings, get_settings
from astrochat.core.store.base import DocumentStore
from astrochat.core.utils.clock import Clock
from astrochat.domains.contacts.router import router as contacts_router
from astrochat.domains.messages.router import router as messages_router
from astrochat.domains.realtime.router import router as realtime_router
from astrochat.domains.users.router import router as users_router


def build_app(
    settings: Settings | None = None,
    *,
    store: DocumentStore | None = None,
    clock: Clock | None = None,
    hasher: PasswordHasher | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logger = setup_logger(settings.log_level)
    services = build_services(settings, store=store, clock=clock, hasher=hasher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        create_schema = getattr(services.store, "create_schema", None)
        if create_schema is not None:
            await create_schema()
        logger.info("app_started", env=settings.env)
        yield
        dispose = getattr(services.store, "dispose", None)
        if dispose is not None:
            await dispose()
        logger.info("app_stopped")

    app = FastAPI(title="Astrochat", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ValidationNormalizeMiddleware)
    app.add_exception_handler(DomainError, domain_error_handler)

    for router in (users_router, contacts_router, messages_router):
        app.include_router(router, prefix="/api")
    app.include_router(realtime_router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "env": settings.env}

    return app


def run() -> None:
    import uvicorn

    uvicorn.run(
        "astrochat.main:build_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


__all__ = ["build_app", "run"]
