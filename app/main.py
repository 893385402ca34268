from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import Depends, FastAPI

from app.repositories.audit_session_store import AuditSessionStore, get_audit_session_store


def _validate_env() -> None:
    """
    Validate all environment-driven settings at startup.

    Raises RuntimeError listing every invalid variable so the operator can fix
    all problems in one restart cycle. A missing browser runtime is not a
    startup error: submissions report it per request with a 501.
    """

    from app.config import load_env_files, validate_settings

    load_env_files()

    errors = validate_settings()
    if errors:
        raise RuntimeError(
            "Startup validation failed - invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _prepare_reports_dir() -> None:
    from app.config import get_audit_settings

    reports_dir = get_audit_settings().reports_dir
    reports_dir.mkdir(parents=True, exist_ok=True)
    logging.getLogger(__name__).info("Reports directory ready at %s", reports_dir)


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Prepare the reports directory and start the session sweeper; shut it down on exit."""
    _prepare_reports_dir()

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Lighthouse Batch Audit API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import audit_router, reports_router, upload_router

    application.include_router(audit_router)
    application.include_router(upload_router)
    application.include_router(reports_router)

    @application.get("/health")
    def healthcheck(
        store: AuditSessionStore = Depends(get_audit_session_store),
    ) -> dict[str, object]:
        return {
            "status": "ok",
            "active_sessions": store.count(),
        }

    return application


app = create_app()
