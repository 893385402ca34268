"""
audit_engine/errors.py

Audit engine exceptions and per-URL failure classification.
"""

from __future__ import annotations

import subprocess

from app.domain.audit import FailureCause

RUNTIME_UNAVAILABLE_MESSAGE = (
    "Chrome browser not available in this environment. Please try running locally."
)
TIMEOUT_MESSAGE = "Request timeout - the audit took too long to complete."
CONNECTION_REFUSED_MESSAGE = "Connection refused - unable to connect to the target website."

RUNTIME_UNAVAILABLE_SUGGESTION = (
    "Install the Lighthouse CLI (npm install -g lighthouse) and a Chromium build "
    "(playwright install chromium), or run the service on a machine that has them."
)

# Lighthouse runtimeError codes whose messages do not mention a timeout.
TIMEOUT_RUNTIME_CODES = frozenset({"PROTOCOL_TIMEOUT", "PAGE_HUNG", "NO_FCP", "NO_LCP"})

_CONNECTION_REFUSED_MARKERS = ("econnrefused", "connection refused", "err_connection_refused")
_TIMEOUT_MARKERS = ("timeout", "timed out")
_RUNTIME_MARKERS = ("executable doesn't exist", "chrome", "chromium", "browsertype.launch")


class AuditEngineError(Exception):
    """
    Base exception for failures while auditing a single URL.

    ``code`` carries the engine's own runtime error code when it reported one.
    """

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class EngineTimeoutError(AuditEngineError):
    """Raised when the audit engine exceeds its time budget."""


class EngineReportError(AuditEngineError):
    """Raised when the audit engine output is missing or unreadable."""


class AutomationRuntimeUnavailableError(AuditEngineError):
    """
    Raised when no browser-automation runtime can be started on this host.
    """

    def __init__(self, message: str, *, suggestion: str = RUNTIME_UNAVAILABLE_SUGGESTION) -> None:
        super().__init__(message)
        self.suggestion = suggestion

    def to_dict(self) -> dict[str, str]:
        return {"error": str(self), "suggestion": self.suggestion}


def classify_failure(exc: BaseException) -> tuple[str, str]:
    """
    Map an exception raised while auditing one URL to ``(cause, message)``.
    """

    if isinstance(exc, AutomationRuntimeUnavailableError):
        return FailureCause.RUNTIME_UNAVAILABLE, RUNTIME_UNAVAILABLE_MESSAGE
    if isinstance(exc, (EngineTimeoutError, TimeoutError, subprocess.TimeoutExpired)):
        return FailureCause.TIMEOUT, TIMEOUT_MESSAGE
    if isinstance(exc, ConnectionRefusedError):
        return FailureCause.CONNECTION_REFUSED, CONNECTION_REFUSED_MESSAGE
    if getattr(exc, "code", None) in TIMEOUT_RUNTIME_CODES:
        return FailureCause.TIMEOUT, TIMEOUT_MESSAGE

    message = str(exc).strip() or type(exc).__name__
    lowered = message.lower()
    if any(marker in lowered for marker in _CONNECTION_REFUSED_MARKERS):
        return FailureCause.CONNECTION_REFUSED, CONNECTION_REFUSED_MESSAGE
    if any(marker in lowered for marker in _TIMEOUT_MARKERS):
        return FailureCause.TIMEOUT, TIMEOUT_MESSAGE
    if any(marker in lowered for marker in _RUNTIME_MARKERS):
        return FailureCause.RUNTIME_UNAVAILABLE, RUNTIME_UNAVAILABLE_MESSAGE
    return FailureCause.UNCLASSIFIED, message
