"""Roster API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map RosterError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, remote client, connectivity monitor and repository wired in lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Connectivity monitor optional (CONNECTIVITY_ENABLED=false): without it the
      repository fetches once on startup
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import health, users
from app.config import Settings, get_settings
from app.core.sort_users import configure_collation
from app.infrastructure.connectivity import ConnectivityMonitor
from app.infrastructure.database import init_db
from app.infrastructure.observability import setup_logging
from app.infrastructure.user_directory_client import HttpUserDirectoryClient
from app.infrastructure.user_store import SqlUserStore
from app.services.user_repository import UserRepository, init_user_repository

logger = logging.getLogger(__name__)


def _build_monitor(settings: Settings) -> ConnectivityMonitor | None:
    if not settings.connectivity_enabled:
        return None
    return ConnectivityMonitor(
        settings.probe_url,
        interval_seconds=settings.connectivity_probe_interval_seconds,
        timeout_seconds=settings.remote_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    configure_collation(settings.sort_locale)

    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_auto_create:
        await db.create_schema()

    client = HttpUserDirectoryClient(
        settings.remote_users_url, timeout_seconds=settings.remote_timeout_seconds,
    )
    monitor = _build_monitor(settings)
    repository = init_user_repository(
        UserRepository(SqlUserStore(db), client, monitor),
    )
    repository.start()
    logger.info("Roster API started")
    yield
    logger.info("Roster API shutting down")
    await repository.stop()
    if monitor is not None:
        await monitor.aclose()
    await client.aclose()
    await db.dispose()


app = FastAPI(title="Roster API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)

register_error_handlers(app)
