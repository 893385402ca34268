"""
app/domain package marker.
"""

from app.domain.audit import (
    FORM_FACTORS,
    NOT_APPLICABLE,
    TERMINAL_STATUSES,
    ArtifactPaths,
    AuditFailure,
    AuditRequest,
    AuditResult,
    AuditSession,
    AuditSuccess,
    CategoryScores,
    FailureCause,
    FormFactor,
    Opportunity,
    SessionPhase,
    SessionStatus,
    result_to_dict,
)

__all__ = [
    "FORM_FACTORS",
    "NOT_APPLICABLE",
    "TERMINAL_STATUSES",
    "ArtifactPaths",
    "AuditFailure",
    "AuditRequest",
    "AuditResult",
    "AuditSession",
    "AuditSuccess",
    "CategoryScores",
    "FailureCause",
    "FormFactor",
    "Opportunity",
    "SessionPhase",
    "SessionStatus",
    "result_to_dict",
]
