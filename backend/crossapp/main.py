"""CrossApp API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CrossAppError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - CrossAppContext built in the lifespan and stored on app.state.crossapp

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Stored connections load at startup; an unreachable store leaves the registry
      empty and readiness reports it, the process still serves liveness
    - Shutdown gives the sync queue a bounded drain before disposing the engine
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crossapp.api.error_handlers import register_error_handlers
from crossapp.api.routes import connections, cross_app, health, sync, system_settings
from crossapp.config import get_settings
from crossapp.core.errors import DatabaseError
from crossapp.infrastructure.database import DatabaseSessionManager
from crossapp.infrastructure.observability import setup_logging
from crossapp.services.context import build_context

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = DatabaseSessionManager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    ctx = build_context(settings, db=db)
    try:
        await ctx.admin.load()
    except DatabaseError as e:
        logger.error(f"Could not load stored connections: {e.message}")
    app.state.crossapp = ctx
    logger.info("CrossApp API started")
    yield
    logger.info("CrossApp API shutting down")
    await ctx.close()


app = FastAPI(
    title="CrossApp API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(connections.router)
app.include_router(system_settings.router)
app.include_router(sync.router)
app.include_router(cross_app.router)

register_error_handlers(app)
