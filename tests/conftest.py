from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from app.config import AuditSettings
from app.domain.audit import Opportunity
from app.repositories.audit_session_store import InMemoryAuditSessionStore
from audit_engine.artifacts import ArtifactWriter
from audit_engine.base import (
    BaseAuditEngine,
    BrowserLauncher,
    BrowserSession,
    EngineResult,
    NavigationOutcome,
)
from audit_engine.pipeline import AuditPipeline
from audit_engine.profiles import DeviceProfile

START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeBrowserSession(BrowserSession):
    def __init__(self, launcher: "FakeBrowserLauncher", port: int) -> None:
        self._launcher = launcher
        self._port = port

    @property
    def debug_port(self) -> int:
        return self._port

    def navigate(self, url: str, *, timeout_ms: int, settle_ms: int = 0) -> NavigationOutcome:
        self._launcher.navigations.append((url, timeout_ms, settle_ms))
        error = self._launcher.navigation_errors.get(url)
        if error:
            return NavigationOutcome(loaded=False, error=error)
        return NavigationOutcome(loaded=True)


class FakeBrowserLauncher(BrowserLauncher):
    def __init__(
        self,
        *,
        launch_error: Exception | None = None,
        navigation_errors: dict[str, str] | None = None,
    ) -> None:
        self.launch_error = launch_error
        self.navigation_errors = navigation_errors or {}
        self.navigations: list[tuple[str, int, int]] = []
        self.profiles: list[DeviceProfile] = []
        self.launched = 0
        self.released = 0
        self.active = 0
        self.max_active = 0

    @contextmanager
    def launch(self, profile: DeviceProfile) -> Iterator[FakeBrowserSession]:
        self.profiles.append(profile)
        if self.launch_error is not None:
            raise self.launch_error
        self.launched += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            yield FakeBrowserSession(self, 9000 + self.launched)
        finally:
            self.active -= 1
            self.released += 1


class FakeEngine(BaseAuditEngine):
    def __init__(
        self,
        outcomes: dict[str, EngineResult | Exception] | None = None,
        default: EngineResult | Exception | None = None,
    ) -> None:
        self.outcomes = outcomes or {}
        self.default = default if default is not None else make_engine_result()
        self.calls: list[tuple[str, str, int]] = []

    def run(self, url: str, profile: DeviceProfile, *, debug_port: int) -> EngineResult:
        self.calls.append((url, profile.form_factor, debug_port))
        outcome = self.outcomes.get(url, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_engine_result(
    *,
    performance: float | None = 0.91,
    accessibility: float | None = 0.874,
    best_practices: float | None = 1.0,
    seo: float | None = 0.995,
    pwa: float | None = None,
    opportunities: tuple[Opportunity, ...] = (
        Opportunity("Reduce unused JavaScript", "Potential savings of 120 KiB", 450.0),
        Opportunity("Serve images in next-gen formats", "Potential savings of 80 KiB", 900.0),
    ),
) -> EngineResult:
    scores: dict[str, float | None] = {
        "performance": performance,
        "accessibility": accessibility,
        "best-practices": best_practices,
        "seo": seo,
    }
    if pwa is not None:
        scores["pwa"] = pwa
    return EngineResult(
        category_scores=scores,
        opportunities=opportunities,
        structured_report='{"lighthouseVersion": "12.0.0"}',
        rendered_report="<html><body>report</body></html>",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> InMemoryAuditSessionStore:
    return InMemoryAuditSessionStore(retention=timedelta(hours=24), clock=clock)


@pytest.fixture()
def audit_settings(tmp_path: Path) -> AuditSettings:
    return AuditSettings(
        reports_dir=tmp_path / "reports",
        navigation_timeout_ms=45_000,
        settle_delay_ms=0,
    )


@pytest.fixture()
def artifact_writer(audit_settings: AuditSettings) -> ArtifactWriter:
    return ArtifactWriter(audit_settings.reports_dir)


@pytest.fixture()
def browser_launcher() -> FakeBrowserLauncher:
    return FakeBrowserLauncher()


@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def pipeline(
    store: InMemoryAuditSessionStore,
    engine: FakeEngine,
    browser_launcher: FakeBrowserLauncher,
    artifact_writer: ArtifactWriter,
    audit_settings: AuditSettings,
    clock: FakeClock,
) -> AuditPipeline:
    return AuditPipeline(
        store=store,
        engine=engine,
        browser_launcher=browser_launcher,
        artifact_writer=artifact_writer,
        settings=audit_settings,
        clock=clock,
    )
