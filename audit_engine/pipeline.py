"""
audit_engine/pipeline.py

Sequential per-session audit pipeline.

One pipeline run owns one session id and is the only writer for it. URLs are
processed strictly in submission order, each inside its own browser process;
a failure for one URL is recorded as that URL's result and never stops the
batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol, Sequence

from app.config import AuditSettings, get_audit_settings
from app.domain.audit import (
    AuditFailure,
    AuditRequest,
    AuditResult,
    AuditSuccess,
)
from app.logging_utils import log_event
from app.repositories.audit_session_store import AuditSessionStore, SessionStoreError
from audit_engine.artifacts import ArtifactWriter, generate_timestamp
from audit_engine.base import BaseAuditEngine, BrowserLauncher
from audit_engine.errors import classify_failure
from audit_engine.profiles import DeviceProfile, resolve_device_profile
from audit_engine.scoring import convert_scores, rank_opportunities

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class BatchSummarizer(Protocol):
    def summarize(
        self,
        results: Sequence[AuditResult],
        *,
        form_factor: str,
        api_key: str,
    ) -> str:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditPipeline:
    """
    Drives one browser lifecycle per URL and records every outcome in the store.
    """

    def __init__(
        self,
        *,
        store: AuditSessionStore,
        engine: BaseAuditEngine,
        browser_launcher: BrowserLauncher,
        artifact_writer: ArtifactWriter,
        summarizer: BatchSummarizer | None = None,
        settings: AuditSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._browser_launcher = browser_launcher
        self._artifact_writer = artifact_writer
        self._summarizer = summarizer
        self._settings = settings or get_audit_settings()
        self._clock = clock or _utcnow

    def run(self, session_id: str, request: AuditRequest) -> None:
        """
        Audit every URL of ``request`` and move the session to a terminal status.

        Never raises: an unexpected error marks the session ``error`` instead.
        """

        try:
            profile = resolve_device_profile(
                request.form_factor,
                request.bypass_token,
                bypass_header=self._settings.bypass_header,
            )
            self._artifact_writer.ensure_directory()
            log_event(
                logger,
                logging.INFO,
                "audit_session_started",
                session_id=session_id,
                total=request.total,
                form_factor=profile.form_factor,
            )

            results: list[AuditResult] = []
            for index, url in enumerate(request.urls):
                self._store.record_progress(session_id, url=url, index=index)
                result = self.audit_url(url, profile)
                self._store.append_result(session_id, result)
                results.append(result)

            insight_path = None
            if request.summarizer_api_key and self._summarizer is not None:
                self._store.begin_summarizing(session_id)
                insight_path = self._summarize(session_id, results, request)

            self._store.complete(session_id, insight_artifact_path=insight_path)
            log_event(
                logger,
                logging.INFO,
                "audit_session_completed",
                session_id=session_id,
                total=request.total,
                failed=sum(1 for result in results if not result.succeeded),
                insight_artifact_path=insight_path,
            )
        except Exception as exc:
            self._fail_session(session_id, exc)

    def audit_url(self, url: str, profile: DeviceProfile) -> AuditResult:
        """
        Audit one URL in a fresh browser; any failure becomes an ``AuditFailure``.
        """

        try:
            with self._browser_launcher.launch(profile) as browser:
                outcome = browser.navigate(
                    url,
                    timeout_ms=self._settings.navigation_timeout_ms,
                    settle_ms=self._settings.settle_delay_ms,
                )
                if not outcome.loaded:
                    log_event(
                        logger,
                        logging.WARNING,
                        "navigation_incomplete",
                        url=url,
                        error=outcome.error,
                    )
                engine_result = self._engine.run(url, profile, debug_port=browser.debug_port)

            artifact_paths = self._artifact_writer.write_reports(
                url=url,
                form_factor=profile.form_factor,
                structured_report=engine_result.structured_report,
                rendered_report=engine_result.rendered_report,
                timestamp=generate_timestamp(self._clock()),
            )
            result = AuditSuccess(
                url=url,
                scores=convert_scores(engine_result.category_scores),
                opportunities=rank_opportunities(engine_result.opportunities),
                artifact_paths=artifact_paths,
            )
            log_event(
                logger,
                logging.INFO,
                "url_audited",
                url=url,
                performance=result.scores.performance,
                opportunities=len(result.opportunities),
            )
            return result
        except Exception as exc:
            cause, message = classify_failure(exc)
            log_event(
                logger,
                logging.WARNING,
                "url_audit_failed",
                url=url,
                cause=cause,
                error=f"{type(exc).__name__}: {exc}",
            )
            return AuditFailure(url=url, error=message, cause=cause)

    def _summarize(
        self,
        session_id: str,
        results: Sequence[AuditResult],
        request: AuditRequest,
    ) -> str | None:
        try:
            return self._summarizer.summarize(
                results,
                form_factor=request.form_factor,
                api_key=request.summarizer_api_key,
            )
        except Exception:
            logger.exception("Insight summary failed for session %s", session_id)
            return None

    def _fail_session(self, session_id: str, exc: Exception) -> None:
        error_message = f"Audit session failed unexpectedly ({type(exc).__name__})."
        logger.exception("Audit session failed id=%s", session_id)
        try:
            self._store.fail(session_id, error=error_message)
        except SessionStoreError:
            logger.exception("Failed to persist failed audit session state id=%s", session_id)
