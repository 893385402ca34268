"""
app/domain/audit.py

Domain models for batch audit sessions and per-URL audit results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

NOT_APPLICABLE = "N/A"


class FormFactor:
    DESKTOP = "desktop"
    MOBILE = "mobile"


FORM_FACTORS: frozenset[str] = frozenset({FormFactor.DESKTOP, FormFactor.MOBILE})


class SessionStatus:
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


TERMINAL_STATUSES: frozenset[str] = frozenset({SessionStatus.COMPLETED, SessionStatus.ERROR})


class SessionPhase:
    """
    Transient sub-state of a session; only meaningful while status is processing.
    """

    AUDITING = "auditing"
    SUMMARIZING = "summarizing"
    DONE = "done"


class FailureCause:
    RUNTIME_UNAVAILABLE = "runtime_unavailable"
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class CategoryScores:
    """
    Integer category scores in the 0-100 range.

    ``pwa`` is ``NOT_APPLICABLE`` when the engine did not report the category.
    """

    performance: int
    accessibility: int
    best_practices: int
    seo: int
    pwa: int | str = NOT_APPLICABLE

    def to_dict(self) -> dict[str, int | str]:
        return {
            "performance": self.performance,
            "accessibility": self.accessibility,
            "best-practices": self.best_practices,
            "seo": self.seo,
            "pwa": self.pwa,
        }


@dataclass(frozen=True)
class Opportunity:
    title: str
    display_value: str | None = None
    numeric_value: float | None = None


@dataclass(frozen=True)
class ArtifactPaths:
    structured_report: str
    rendered_report: str


@dataclass(frozen=True)
class AuditSuccess:
    url: str
    scores: CategoryScores
    opportunities: tuple[Opportunity, ...]
    artifact_paths: ArtifactPaths

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class AuditFailure:
    url: str
    error: str
    cause: str = FailureCause.UNCLASSIFIED

    @property
    def succeeded(self) -> bool:
        return False


AuditResult = Union[AuditSuccess, AuditFailure]


@dataclass(frozen=True)
class AuditRequest:
    """
    A validated batch audit submission.
    """

    urls: tuple[str, ...]
    form_factor: str
    summarizer_api_key: str | None = None
    bypass_token: str | None = None

    @property
    def total(self) -> int:
        return len(self.urls)


@dataclass(frozen=True)
class AuditSession:
    """
    Point-in-time snapshot of one batch audit session.
    """

    session_id: str
    total: int
    status: str = SessionStatus.PROCESSING
    phase: str = SessionPhase.AUDITING
    progress: int = 0
    results: tuple[AuditResult, ...] = ()
    current_url: str | None = None
    error: str | None = None
    insight_artifact_path: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.succeeded)


def result_to_dict(result: AuditResult) -> dict[str, Any]:
    """
    Serialize one audit result into its wire representation.
    """

    if isinstance(result, AuditFailure):
        return {"url": result.url, "error": result.error, "cause": result.cause}

    return {
        "url": result.url,
        "scores": result.scores.to_dict(),
        "opportunities": [
            {
                "title": item.title,
                "display_value": item.display_value,
                "numeric_value": item.numeric_value,
            }
            for item in result.opportunities
        ],
        "report_paths": {
            "json": result.artifact_paths.structured_report,
            "html": result.artifact_paths.rendered_report,
        },
    }
