"""
app/services package marker.
"""

from app.services.audit_orchestrator_service import (
    AuditOrchestratorService,
    AuditRequestValidationError,
    AuditSubmission,
    FastAPIBackgroundTaskExecutor,
    InlineTaskExecutor,
    build_audit_request,
    build_default_pipeline,
    get_audit_orchestrator_service,
)
from app.services.url_upload_service import (
    URLUploadError,
    URLUploadService,
    URLUploadTooLargeError,
    get_url_upload_service,
)

__all__ = [
    "AuditOrchestratorService",
    "AuditRequestValidationError",
    "AuditSubmission",
    "FastAPIBackgroundTaskExecutor",
    "InlineTaskExecutor",
    "build_audit_request",
    "build_default_pipeline",
    "get_audit_orchestrator_service",
    "URLUploadError",
    "URLUploadService",
    "URLUploadTooLargeError",
    "get_url_upload_service",
]
