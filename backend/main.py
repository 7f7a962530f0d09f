"""
VibeBuilder FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from backend import db
from backend.config import settings
from backend.middleware.rate_limit import turn_rate_limiter
from backend.routes import published as published_routes
from backend.routes import sessions as session_routes
from backend.routes import sites as site_routes
from backend.routes import users as user_routes
from backend.routes import ws as ws_routes
from backend.services.editing_session import session_store

logger = logging.getLogger(__name__)


def run_cleanup() -> None:
    """Evict idle editing sessions and forget stale rate limit entries."""
    evicted = session_store.evict_idle(timedelta(hours=settings.SESSION_IDLE_HOURS))
    if evicted > 0:
        logger.info("Evicted %d idle editing sessions", evicted)
    turn_rate_limiter.cleanup_old_entries(max_age_minutes=60)


# Background task for cleanup
async def cleanup_task():
    """
    Background task to evict idle sessions and old rate limit entries.

    Runs every 60 seconds.
    """
    while True:
        try:
            run_cleanup()
        except Exception:
            logger.exception("Error in cleanup task")

        # Wait 60 seconds before next cleanup
        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Initialize database pool
    - Start background cleanup task
    - Close database pool on shutdown
    """
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Startup
    await db.init_pool()
    logger.info("Database pool initialized")

    if not settings.ANTHROPIC_API_KEY:
        logger.warning("ANTHROPIC_API_KEY is not set; instructions will be refused")
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; images will use placeholders")

    cleanup_task_handle = asyncio.create_task(cleanup_task())
    logger.info("Background cleanup task started")

    yield

    # Shutdown
    cleanup_task_handle.cancel()
    try:
        await cleanup_task_handle
    except asyncio.CancelledError:
        logger.info("Background cleanup task stopped")

    await db.close_pool()
    logger.info("Database pool closed")


app = FastAPI(
    title="VibeBuilder",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(user_routes.router)
app.include_router(site_routes.router)
app.include_router(session_routes.router)
app.include_router(ws_routes.router)
app.include_router(published_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    if not await db.ping():
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "ok"}
