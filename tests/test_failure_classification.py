from __future__ import annotations

import subprocess

import pytest

from app.domain.audit import FailureCause
from audit_engine.errors import (
    CONNECTION_REFUSED_MESSAGE,
    RUNTIME_UNAVAILABLE_MESSAGE,
    TIMEOUT_MESSAGE,
    AuditEngineError,
    AutomationRuntimeUnavailableError,
    EngineTimeoutError,
    classify_failure,
)


@pytest.mark.parametrize(
    ("exc", "cause", "message"),
    [
        (AutomationRuntimeUnavailableError("no chrome"), FailureCause.RUNTIME_UNAVAILABLE, RUNTIME_UNAVAILABLE_MESSAGE),
        (EngineTimeoutError("took too long"), FailureCause.TIMEOUT, TIMEOUT_MESSAGE),
        (subprocess.TimeoutExpired(["lighthouse"], 1), FailureCause.TIMEOUT, TIMEOUT_MESSAGE),
        (TimeoutError(), FailureCause.TIMEOUT, TIMEOUT_MESSAGE),
        (ConnectionRefusedError(), FailureCause.CONNECTION_REFUSED, CONNECTION_REFUSED_MESSAGE),
        (
            AuditEngineError("net::ERR_CONNECTION_REFUSED at https://a.example"),
            FailureCause.CONNECTION_REFUSED,
            CONNECTION_REFUSED_MESSAGE,
        ),
        (RuntimeError("Navigation timeout of 45000 ms exceeded"), FailureCause.TIMEOUT, TIMEOUT_MESSAGE),
        (
            AuditEngineError("The page stopped responding.", code="PAGE_HUNG"),
            FailureCause.TIMEOUT,
            TIMEOUT_MESSAGE,
        ),
        (
            RuntimeError("Executable doesn't exist at /ms-playwright/chromium/chrome"),
            FailureCause.RUNTIME_UNAVAILABLE,
            RUNTIME_UNAVAILABLE_MESSAGE,
        ),
        (ValueError("Lighthouse returned no result"), FailureCause.UNCLASSIFIED, "Lighthouse returned no result"),
        (KeyError(), FailureCause.UNCLASSIFIED, "KeyError"),
    ],
)
def test_classify_failure(exc: BaseException, cause: str, message: str) -> None:
    assert classify_failure(exc) == (cause, message)


def test_runtime_unavailable_error_serializes_for_clients() -> None:
    exc = AutomationRuntimeUnavailableError("Chrome missing", suggestion="Install Chromium.")

    assert exc.to_dict() == {"error": "Chrome missing", "suggestion": "Install Chromium."}
