"""
app/repositories package marker.
"""

from app.repositories.audit_session_store import (
    AuditSessionStore,
    InMemoryAuditSessionStore,
    SessionNotFoundError,
    SessionStateError,
    SessionStoreError,
    get_audit_session_store,
)

__all__ = [
    "AuditSessionStore",
    "InMemoryAuditSessionStore",
    "SessionNotFoundError",
    "SessionStateError",
    "SessionStoreError",
    "get_audit_session_store",
]
