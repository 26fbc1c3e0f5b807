"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (upload dir, schema, engine).
Middleware, CORS, error handlers, and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dogapi import __version__
from dogapi.api import api_router
from dogapi.config import settings
from dogapi.errors import register_exception_handlers

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: FastAPI lifespan replaces on_event("startup") / on_event("shutdown").
    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    from dogapi.db.engine import engine, init_models
    from dogapi.storage.media import get_media_store

    logger.info(
        "dogapi.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    upload_root = get_media_store().ensure_root()
    logger.info("dogapi.upload_dir_ready", path=str(upload_root))

    if settings.auto_create_schema:
        await init_models(engine)
        logger.info("dogapi.schema_ready")

    yield

    logger.info("dogapi.shutdown")
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Dog Images API",
        description="Per-user dog image storage with username/password auth",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler

    from dogapi.middleware.request_id import RequestIdMiddleware
    from dogapi.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: dogapi.main:app)
app = create_app()
