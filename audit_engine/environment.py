"""
audit_engine/environment.py

Detection of a usable browser-automation runtime on the current host.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from app.config import AuditSettings, get_audit_settings, is_serverless_platform
from audit_engine.errors import RUNTIME_UNAVAILABLE_MESSAGE, AutomationRuntimeUnavailableError

logger = logging.getLogger(__name__)

# Only successful lookups are kept; a failed driver query is retried next time.
_chromium_path_cache: dict[str, str] = {}


def _query_bundled_chromium() -> str | None:
    try:
        with sync_playwright() as playwright:
            return playwright.chromium.executable_path
    except PlaywrightError:
        logger.warning("Playwright could not report a Chromium executable path.")
        return None


def _bundled_chromium_path() -> str | None:
    cached = _chromium_path_cache.get("bundled")
    if cached:
        return cached
    path = _query_bundled_chromium()
    if path:
        _chromium_path_cache["bundled"] = path
    return path


def resolve_chromium_executable(settings: AuditSettings) -> Path | None:
    raw_path = settings.chromium_executable_path or _bundled_chromium_path()
    if not raw_path:
        return None
    candidate = Path(raw_path)
    return candidate if candidate.is_file() else None


def check_automation_runtime(settings: AuditSettings | None = None) -> None:
    """
    Raise ``AutomationRuntimeUnavailableError`` unless audits can run here.

    Checks serverless platform markers, the Lighthouse CLI on PATH and a
    launchable Chromium executable, in that order.
    """

    settings = settings or get_audit_settings()

    if is_serverless_platform():
        raise AutomationRuntimeUnavailableError(
            RUNTIME_UNAVAILABLE_MESSAGE,
            suggestion=(
                "Serverless platforms cannot launch a local Chromium process. "
                "Run the service on a host with Lighthouse and Chromium installed."
            ),
        )

    if shutil.which(settings.lighthouse_binary) is None:
        raise AutomationRuntimeUnavailableError(
            RUNTIME_UNAVAILABLE_MESSAGE,
            suggestion=(
                f"Lighthouse CLI '{settings.lighthouse_binary}' was not found on PATH. "
                "Install it with: npm install -g lighthouse"
            ),
        )

    if resolve_chromium_executable(settings) is None:
        raise AutomationRuntimeUnavailableError(
            RUNTIME_UNAVAILABLE_MESSAGE,
            suggestion=(
                "No Chromium executable was found. Install one with "
                "'playwright install chromium' or set CHROMIUM_EXECUTABLE_PATH."
            ),
        )
