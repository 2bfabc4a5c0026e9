"""Inkfolio REST API — FastAPI application factory."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inkfolio.api.deps import (
    create_tables,
    dispose_engine,
    get_reconcile_service,
    init_session_factory,
)
from inkfolio.api.errors import register_error_handlers
from inkfolio.api.middleware.request_id import RequestIDMiddleware
from inkfolio.api.routers import auth, ops, tattoos, users
from inkfolio.core.logging import setup_logging
from inkfolio.scheduler import create_scheduler


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: init DB and background sweep. Shutdown: stop both."""
    factory = init_session_factory()
    if os.environ.get("INKFOLIO_CREATE_TABLES", "0") == "1":
        await create_tables()

    scheduler = create_scheduler(factory, reconcile_service=get_reconcile_service())
    await scheduler.start()
    yield
    await scheduler.stop()
    await dispose_engine()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="Inkfolio",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    cors_origins = os.environ.get("INKFOLIO_CORS_ORIGINS", "http://localhost:3000")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cors_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/v1/users", tags=["users"])
    app.include_router(tattoos.router, prefix="/api/v1/tattoos", tags=["tattoos"])
    app.include_router(ops.router, prefix="/api/v1/ops", tags=["ops"])

    return app


def main() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        create_app(),
        host=os.environ.get("INKFOLIO_HOST", "0.0.0.0"),
        port=int(os.environ.get("INKFOLIO_PORT", "8000")),
        log_config=None,
    )
