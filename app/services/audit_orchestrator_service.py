"""
Orchestrator service for batch audit submission and session lifecycle tracking.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks

from app.config import get_audit_settings
from app.domain.audit import FORM_FACTORS, AuditRequest, AuditSession
from app.logging_utils import log_event
from app.repositories.audit_session_store import (
    AuditSessionStore,
    SessionStoreError,
    get_audit_session_store,
)
from app.validators.url_validator import normalize_urls
from audit_engine.artifacts import ArtifactWriter
from audit_engine.browser import PlaywrightBrowserLauncher
from audit_engine.environment import check_automation_runtime
from audit_engine.lighthouse import LighthouseCLIEngine
from audit_engine.pipeline import AuditPipeline
from llm_synthesis.summarizer import InsightSummarizer

logger = logging.getLogger(__name__)

RuntimeCheck = Callable[[], None]


class AuditRequestValidationError(ValueError):
    """Raised when a submission cannot produce a valid audit request."""


class AuditTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class InlineTaskExecutor:
    """Runs the task immediately in the caller's thread (CLI and tests)."""

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        task(*args, **kwargs)


@dataclass(frozen=True)
class AuditSubmission:
    session_id: str
    total: int


def build_audit_request(
    urls: Sequence[object] | None,
    form_factor: str | None,
    *,
    summarizer_api_key: str | None = None,
    bypass_token: str | None = None,
) -> AuditRequest:
    """
    Validate raw submission fields into an ``AuditRequest``.

    Invalid URLs are dropped; at least one must survive.
    """

    if not urls:
        raise AuditRequestValidationError("URLs array is required.")

    normalized_form_factor = (form_factor or "").strip().lower()
    if not normalized_form_factor:
        raise AuditRequestValidationError("Configuration with form_factor is required.")
    if normalized_form_factor not in FORM_FACTORS:
        raise AuditRequestValidationError(
            f"Unknown form_factor '{form_factor}'. Allowed values: {sorted(FORM_FACTORS)}."
        )

    valid_urls = normalize_urls(urls)
    if not valid_urls:
        raise AuditRequestValidationError("No valid URLs provided.")

    return AuditRequest(
        urls=tuple(valid_urls),
        form_factor=normalized_form_factor,
        summarizer_api_key=(summarizer_api_key or "").strip() or None,
        bypass_token=(bypass_token or "").strip() or None,
    )


class AuditOrchestratorService:
    """
    Coordinates session creation, background execution and status reads.
    """

    def __init__(
        self,
        *,
        store: AuditSessionStore,
        pipeline: AuditPipeline,
        runtime_check: RuntimeCheck = check_automation_runtime,
    ) -> None:
        self._store = store
        self._pipeline = pipeline
        self._runtime_check = runtime_check

    def submit(
        self,
        *,
        executor: AuditTaskExecutor,
        urls: Sequence[object] | None,
        form_factor: str | None,
        summarizer_api_key: str | None = None,
        bypass_token: str | None = None,
    ) -> AuditSubmission:
        """
        Validate, check the runtime and dispatch one pipeline task.

        Raises:
            AuditRequestValidationError: If the submission is invalid.
            AutomationRuntimeUnavailableError: If audits cannot run on this host.
        """

        request = build_audit_request(
            urls,
            form_factor,
            summarizer_api_key=summarizer_api_key,
            bypass_token=bypass_token,
        )
        self._runtime_check()

        session_id = self._store.create(request.total)
        try:
            executor.submit(self._pipeline.run, session_id, request)
        except Exception:
            try:
                self._store.fail(session_id, error="Failed to schedule audit session.")
            except SessionStoreError:
                logger.exception("Failed to persist failed audit session state id=%s", session_id)
            raise

        log_event(
            logger,
            logging.INFO,
            "audit_session_submitted",
            session_id=session_id,
            total=request.total,
            form_factor=request.form_factor,
            summarizer_api_key=request.summarizer_api_key,
        )
        return AuditSubmission(session_id=session_id, total=request.total)

    def get_session(self, session_id: str) -> AuditSession | None:
        return self._store.get(session_id)

    def sweep_expired_sessions(self, now: datetime | None = None) -> int:
        removed = self._store.sweep(now)
        if removed:
            log_event(logger, logging.INFO, "audit_sessions_swept", removed=removed)
        return removed


def build_default_pipeline(store: AuditSessionStore) -> AuditPipeline:
    settings = get_audit_settings()
    artifact_writer = ArtifactWriter(settings.reports_dir, url_prefix=settings.reports_url_prefix)
    return AuditPipeline(
        store=store,
        engine=LighthouseCLIEngine(
            binary=settings.lighthouse_binary,
            timeout_seconds=settings.engine_timeout_seconds,
            max_wait_for_load_ms=settings.max_wait_for_load_ms,
        ),
        browser_launcher=PlaywrightBrowserLauncher(
            executable_path=settings.chromium_executable_path,
        ),
        artifact_writer=artifact_writer,
        summarizer=InsightSummarizer(artifact_writer),
        settings=settings,
    )


@lru_cache(maxsize=1)
def get_audit_orchestrator_service() -> AuditOrchestratorService:
    store = get_audit_session_store()
    return AuditOrchestratorService(store=store, pipeline=build_default_pipeline(store))
