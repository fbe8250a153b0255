"""
Attendance Reconciliation Service - Main Application Entry Point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

from attendance_reconciler.api.router import api_router
from attendance_reconciler.core.config import settings
from attendance_reconciler.core.errors import (
    EngineError,
    engine_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)
from attendance_reconciler.core.logging import setup_logging
from attendance_reconciler.db.session import init_models
from attendance_reconciler.services import scheduler

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite") or not parsed.password:
        return url
    netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


# Create FastAPI app
app = FastAPI(
    title="Attendance Reconciliation Service",
    description="Reconciles biometric punches, shifts, leave and holidays into daily attendance records",
    version=settings.VERSION or "1.0.0"
)

# Configure CORS - must be before other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(EngineError, engine_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))


@app.on_event("startup")
def bootstrap_schema() -> None:
    """Create tables for SQLite; other databases are migrated with `alembic upgrade head`."""
    init_models()


@app.on_event("startup")
def start_background_jobs() -> None:
    if settings.SCHEDULER_ENABLED:
        scheduler.start_scheduler()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")


@app.on_event("shutdown")
def stop_background_jobs() -> None:
    scheduler.shutdown_scheduler()
