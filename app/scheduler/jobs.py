"""
app/scheduler/jobs.py

APScheduler-based sweeper for expired audit sessions.

Schedule
--------
  sweep_expired_sessions: every ``SESSION_SWEEP_INTERVAL_MINUTES`` (default 60)

A session is removed once the creation time encoded in its id is older than
``SESSION_RETENTION_HOURS`` (default 24). The sweep runs whether or not any
client is still polling the session.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_session_settings
from app.logging_utils import log_event
from app.repositories.audit_session_store import AuditSessionStore, get_audit_session_store

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "sweep_expired_sessions"


# ---------------------------------------------------------------------------
# Job: Session sweep
# ---------------------------------------------------------------------------


def sweep_expired_sessions(
    store: AuditSessionStore | None = None,
    now: datetime | None = None,
) -> int:
    """
    Evict every session older than the retention window.

    Errors are logged and swallowed so one bad sweep does not unschedule the job.
    """
    store = store or get_audit_session_store()
    try:
        removed = store.sweep(now)
    except Exception:  # noqa: BLE001
        logger.exception("Scheduler: sweep_expired_sessions failed")
        return 0

    log_event(logger, logging.INFO, "sessions_swept", removed=removed)
    return removed


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(
    store: AuditSessionStore | None = None,
    interval_minutes: float | None = None,
) -> BackgroundScheduler:
    """
    Build and register the session sweep job.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    if interval_minutes is None:
        interval_minutes = get_session_settings().sweep_interval_minutes

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        sweep_expired_sessions,
        trigger="interval",
        minutes=interval_minutes,
        kwargs={"store": store},
        id=SWEEP_JOB_ID,
        name="Expired audit session sweep",
        replace_existing=True,
        misfire_grace_time=600,
        coalesce=True,
    )
    return scheduler
