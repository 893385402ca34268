"""
app/schemas package marker.
"""

from app.schemas.audit import (
    AuditAcceptedResponse,
    AuditConfigPayload,
    AuditSessionStatusResponse,
    AuditSubmitRequest,
    RuntimeUnavailableResponse,
    URLUploadResponse,
)

__all__ = [
    "AuditAcceptedResponse",
    "AuditConfigPayload",
    "AuditSessionStatusResponse",
    "AuditSubmitRequest",
    "RuntimeUnavailableResponse",
    "URLUploadResponse",
]
