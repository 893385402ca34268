"""
audit_engine/browser.py

Playwright-backed browser lifecycle for per-URL audits.

Every audited URL gets its own Chromium process with a remote-debugging port on
an ephemeral local port, so the audit engine can attach to exactly the browser
that was configured for it.
"""

from __future__ import annotations

import logging
import socket
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from app.logging_utils import log_event
from audit_engine.base import BrowserLauncher, BrowserSession, NavigationOutcome
from audit_engine.errors import RUNTIME_UNAVAILABLE_MESSAGE, AutomationRuntimeUnavailableError
from audit_engine.profiles import DeviceProfile

logger = logging.getLogger(__name__)

CHROMIUM_FLAGS: tuple[str, ...] = (
    "--disable-gpu",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-setuid-sandbox",
    "--no-first-run",
    "--no-zygote",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
)

_MISSING_EXECUTABLE_MARKERS = ("executable doesn't exist", "looks like playwright", "no such file")


def find_free_port(host: str = "127.0.0.1") -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return int(sock.getsockname()[1])


def kbps_to_bytes_per_second(kbps: float) -> float:
    """
    Convert a profile throughput to the CDP unit; 0 disables throttling (-1).
    """

    if kbps <= 0:
        return -1
    return kbps * 1024 / 8


def network_conditions(profile: DeviceProfile) -> dict[str, Any]:
    return {
        "offline": False,
        "latency": profile.network_latency_ms,
        "downloadThroughput": kbps_to_bytes_per_second(profile.download_throughput_kbps),
        "uploadThroughput": kbps_to_bytes_per_second(profile.upload_throughput_kbps),
    }


class PlaywrightBrowserSession(BrowserSession):
    """
    One launched Chromium instance with a single profile-configured page.
    """

    def __init__(self, page: Any, debug_port: int) -> None:
        self._page = page
        self._debug_port = debug_port

    @property
    def debug_port(self) -> int:
        return self._debug_port

    def navigate(self, url: str, *, timeout_ms: int, settle_ms: int = 0) -> NavigationOutcome:
        try:
            self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            return NavigationOutcome(loaded=False, error=f"Navigation timed out: {exc}")
        except PlaywrightError as exc:
            return NavigationOutcome(loaded=False, error=str(exc))

        if settle_ms > 0:
            time.sleep(settle_ms / 1000)
        return NavigationOutcome(loaded=True)


class PlaywrightBrowserLauncher(BrowserLauncher):
    """
    Launch Chromium through Playwright with the profile's emulation applied.
    """

    def __init__(self, *, executable_path: str | None = None, headless: bool = True) -> None:
        self._executable_path = executable_path
        self._headless = headless

    @contextmanager
    def launch(self, profile: DeviceProfile) -> Iterator[PlaywrightBrowserSession]:
        debug_port = find_free_port()
        playwright = sync_playwright().start()
        browser = None
        try:
            browser = self._launch_browser(playwright, debug_port)
            context = browser.new_context(
                viewport={"width": profile.viewport_width, "height": profile.viewport_height},
                device_scale_factor=profile.device_scale_factor,
                is_mobile=profile.is_mobile,
                has_touch=profile.is_mobile,
                user_agent=profile.user_agent,
                extra_http_headers=profile.headers or None,
            )
            page = context.new_page()
            self._apply_throttling(context, page, profile)
            log_event(
                logger,
                logging.DEBUG,
                "browser_launched",
                debug_port=debug_port,
                form_factor=profile.form_factor,
            )
            yield PlaywrightBrowserSession(page, debug_port)
        finally:
            if browser is not None:
                try:
                    browser.close()
                except PlaywrightError:
                    logger.warning("Browser on port %s did not close cleanly.", debug_port)
            playwright.stop()

    def _launch_browser(self, playwright: Any, debug_port: int) -> Any:
        try:
            return playwright.chromium.launch(
                headless=self._headless,
                executable_path=self._executable_path,
                args=[*CHROMIUM_FLAGS, f"--remote-debugging-port={debug_port}"],
            )
        except PlaywrightError as exc:
            message = str(exc).lower()
            if any(marker in message for marker in _MISSING_EXECUTABLE_MARKERS):
                raise AutomationRuntimeUnavailableError(RUNTIME_UNAVAILABLE_MESSAGE) from exc
            raise

    def _apply_throttling(self, context: Any, page: Any, profile: DeviceProfile) -> None:
        cdp = context.new_cdp_session(page)
        cdp.send("Network.enable")
        cdp.send("Network.emulateNetworkConditions", network_conditions(profile))
        cdp.send("Emulation.setCPUThrottlingRate", {"rate": profile.cpu_slowdown_multiplier})
