"""
Jokes API — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(store) assembles middleware, exception handlers and routes
       around one storage collaborator and returns the wired app.
Who:   Called by uvicorn (uvicorn jokes_api.main:app) and by tests, which
       pass their own store.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐             │
    │  │  Req ID  │→│ Logging  │→│ GZip │→│ CORS │             │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘             │
    │                                                          │
    │  Routes:                                                 │
    │  ┌────────────┐ ┌────────────────┐ ┌────────────┐        │
    │  │ GET /jokes │ │ GET /jokes/:id │ │ POST /jokes│        │
    │  └────────────┘ └────────────────┘ └────────────┘        │
    │  ┌────────────┐ ┌────────────────┐                       │
    │  │ GET /      │ │ GET /health    │                       │
    │  └────────────┘ └────────────────┘                       │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ NotFound→404 │ Storage→translator │  │
    │  │ Exception→translator (500)                         │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle (only when the app owns its database engine):
    Startup:  configure logging, create missing tables (db_create_tables)
    Shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from jokes_api import __version__
from jokes_api.config import settings
from jokes_api.database import build_engine, build_session_factory, create_tables, dispose_engine
from jokes_api.error_translator import error_response
from jokes_api.exceptions import NotFoundError, StorageError, ValidationError
from jokes_api.middleware.logging import RequestLoggingMiddleware
from jokes_api.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from jokes_api.repositories.joke_repository import JokeRepository, JokeStore
from jokes_api.routes import health, jokes
from jokes_api.services.joke_service import JokeService
from jokes_api.validation import format_request_validation_error

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    log_format = (
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Third-party loggers that emit a line per operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup before yield, shutdown after; engine work only if the app owns one."""
    setup_logging()
    logger.info("Jokes API %s starting up...", __version__)

    engine = getattr(app.state, "engine", None)
    if engine is not None and settings.db_create_tables:
        await create_tables(engine)
        logger.info("Database tables ensured")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("Jokes API shutting down...")
    if engine is not None:
        await dispose_engine(engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError         → 400 {"error": "Validation failed", "details": [...]}
        RequestValidationError  → 400, same shape as ValidationError
        NotFoundError           → 404 {"error": "<Resource> not found"}
        StorageError            → error translator table
        Exception (fallback)    → error translator default (500)

    Error bodies never include stack traces; the translator logs 5xx details.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": exc.message, "details": exc.details},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation failed",
                "details": format_request_validation_error(exc),
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": exc.message})

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        return error_response(exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        return error_response(exc)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(store: Optional[JokeStore] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: Storage collaborator to serve jokes from. When omitted, a
               JokeRepository over an engine built from settings is created;
               the app then owns that engine (table creation at startup,
               disposal at shutdown, database probe in /health).

    Returns:
        Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Jokes API",
        description="CRUD-style access to a collection of jokes.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Storage Collaborator ──────────────────────────────────────────────
    if store is None:
        engine = build_engine()
        app.state.engine = engine
        store = JokeRepository(build_session_factory(engine))
    app.state.store = store
    app.state.joke_service = JokeService(store)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(jokes.router)

    return app


app = create_app()
