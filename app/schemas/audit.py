"""
Schemas for batch audit submission, status polling and URL-list upload.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.audit import AuditSession, result_to_dict


class AuditConfigPayload(BaseModel):
    form_factor: str | None = Field(default=None, description="desktop or mobile")
    summarizer_api_key: str | None = Field(
        default=None,
        description="Optional text-generation API key enabling the batch insight summary",
    )
    bypass_token: str | None = Field(
        default=None,
        description="Optional deployment-protection bypass token sent as a request header",
    )


class AuditSubmitRequest(BaseModel):
    # Left loosely typed so missing or empty values surface as 400, not 422.
    urls: list[Any] | None = None
    config: AuditConfigPayload | None = None


class AuditAcceptedResponse(BaseModel):
    session_id: str
    total: int
    message: str = "Audit started successfully"


class AuditSessionStatusResponse(BaseModel):
    session_id: str
    status: str
    phase: str
    current_url: str | None = None
    progress: int
    total: int
    results: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None
    insight_artifact_path: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: AuditSession) -> "AuditSessionStatusResponse":
        return cls(
            session_id=session.session_id,
            status=session.status,
            phase=session.phase,
            current_url=session.current_url,
            progress=session.progress,
            total=session.total,
            results=[result_to_dict(result) for result in session.results],
            error=session.error,
            insight_artifact_path=session.insight_artifact_path,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class RuntimeUnavailableResponse(BaseModel):
    error: str
    suggestion: str


class URLUploadResponse(BaseModel):
    success: bool = True
    urls: list[str] = Field(default_factory=list)
