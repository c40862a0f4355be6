"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Everything process-wide (token service, storage backend,
Google verifier, DB engine) is built here from Settings and kept on
app.state; request handlers reach it through dependencies, never
through module globals. Tests build their own app with fakes passed in.

Lifespan only logs startup and disposes the engine on shutdown.
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from inkwell import __version__
from inkwell.api import api_router
from inkwell.auth.google import GoogleTokenVerifier
from inkwell.auth.jwt import TokenService
from inkwell.config import Settings, get_settings
from inkwell.db.engine import build_engine, build_session_factory
from inkwell.errors import register_exception_handlers
from inkwell.log import configure_logging
from inkwell.middleware.request_id import RequestIdMiddleware
from inkwell.middleware.security import SecurityHeadersMiddleware
from inkwell.storage import ImageStorage, LocalStorage, build_storage

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "inkwell.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        storage=app.state.storage.name,
        google_sign_in=bool(settings.google_client_id),
    )

    yield

    logger.info("inkwell.shutdown")
    await app.state.engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    *,
    storage: Optional[ImageStorage] = None,
    google_verifier: Optional[GoogleTokenVerifier] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, json=settings.json_logs)

    app = FastAPI(
        title="Inkwell",
        description="Blogging backend — accounts, Google sign-in, posts with images",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Process-wide services ────────────────────────────────
    app.state.settings = settings
    app.state.token_service = TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(minutes=settings.access_token_expire_minutes),
    )
    app.state.google_verifier = google_verifier or GoogleTokenVerifier(
        client_id=settings.google_client_id,
        certs_url=settings.google_certs_url,
        cache_seconds=settings.google_certs_cache_seconds,
    )
    app.state.storage = storage or build_storage(settings)
    app.state.engine = build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)

    register_exception_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    # Local image storage is served by the app itself
    if isinstance(app.state.storage, LocalStorage):
        upload_root: Path = app.state.storage.root
        upload_root.mkdir(parents=True, exist_ok=True)
        app.mount("/uploads", StaticFiles(directory=upload_root), name="uploads")

    return app
