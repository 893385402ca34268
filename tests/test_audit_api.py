"""
tests/test_audit_api.py

HTTP contract tests for audit submission, status polling, report downloads
and the health probe.

The pipeline runs against fake browser and engine doubles. TestClient executes
FastAPI background tasks before returning the response, so a status read right
after a submission observes the finished session.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api.routers.reports import get_artifact_writer
from app.domain.audit import FailureCause, SessionStatus
from app.main import create_app
from app.repositories.audit_session_store import (
    InMemoryAuditSessionStore,
    get_audit_session_store,
)
from app.services.audit_orchestrator_service import (
    AuditOrchestratorService,
    get_audit_orchestrator_service,
)
from audit_engine.artifacts import ArtifactWriter
from audit_engine.errors import TIMEOUT_MESSAGE, AutomationRuntimeUnavailableError, EngineTimeoutError
from audit_engine.pipeline import AuditPipeline
from conftest import FakeBrowserLauncher, FakeEngine


@pytest.fixture()
def runtime_error() -> list[Exception]:
    return []


@pytest.fixture()
def client(
    store: InMemoryAuditSessionStore,
    pipeline: AuditPipeline,
    artifact_writer: ArtifactWriter,
    runtime_error: list[Exception],
) -> TestClient:
    def runtime_check() -> None:
        if runtime_error:
            raise runtime_error[0]

    service = AuditOrchestratorService(store=store, pipeline=pipeline, runtime_check=runtime_check)
    application = create_app()
    application.dependency_overrides[get_audit_orchestrator_service] = lambda: service
    application.dependency_overrides[get_audit_session_store] = lambda: store
    application.dependency_overrides[get_artifact_writer] = lambda: artifact_writer
    # No context manager: the lifespan (and its scheduler) is not needed here.
    return TestClient(application)


def _submit(client: TestClient, urls: object, form_factor: object = "desktop", **config: object):
    body: dict[str, object] = {"urls": urls, "config": {"form_factor": form_factor, **config}}
    return client.post("/audit", json=body)


class TestSubmitAudit:
    def test_accepts_batch_and_completes_in_background(self, client: TestClient) -> None:
        response = _submit(client, ["https://a.example", "https://b.example"])

        assert response.status_code == 202
        body = response.json()
        assert body["total"] == 2
        assert body["message"] == "Audit started successfully"

        status_response = client.get(f"/audit/{body['session_id']}")
        assert status_response.status_code == 200
        session = status_response.json()
        assert session["status"] == SessionStatus.COMPLETED
        assert session["progress"] == 2
        assert [result["url"] for result in session["results"]] == [
            "https://a.example",
            "https://b.example",
        ]
        assert session["results"][0]["scores"] == {
            "performance": 91,
            "accessibility": 87,
            "best-practices": 100,
            "seo": 100,
            "pwa": "N/A",
        }
        assert session["results"][0]["opportunities"][0]["title"] == "Serve images in next-gen formats"
        assert session["insight_artifact_path"] is None

    def test_mixed_batch_drops_invalid_urls_and_isolates_timeouts(
        self,
        client: TestClient,
        browser_launcher: FakeBrowserLauncher,
        engine: FakeEngine,
    ) -> None:
        browser_launcher.navigation_errors["https://slow.example"] = "Timeout 45000ms exceeded."
        engine.outcomes["https://slow.example"] = EngineTimeoutError("engine timed out")

        response = _submit(client, ["https://good.example", "not-a-url", "https://slow.example"])

        assert response.status_code == 202
        assert response.json()["total"] == 2

        session = client.get(f"/audit/{response.json()['session_id']}").json()
        assert session["status"] == SessionStatus.COMPLETED
        assert session["total"] == 2
        assert "scores" in session["results"][0]
        assert session["results"][0]["url"] == "https://good.example"
        assert session["results"][1] == {
            "url": "https://slow.example",
            "error": TIMEOUT_MESSAGE,
            "cause": FailureCause.TIMEOUT,
        }
        assert browser_launcher.released == browser_launcher.launched == 2

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"urls": [], "config": {"form_factor": "desktop"}},
            {"urls": ["https://a.example"]},
            {"urls": ["https://a.example"], "config": {}},
            {"urls": ["https://a.example"], "config": {"form_factor": "tablet"}},
            {"urls": ["not-a-url", "ftp://files.example"], "config": {"form_factor": "mobile"}},
        ],
    )
    def test_invalid_submissions_are_rejected_without_a_session(
        self,
        client: TestClient,
        store: InMemoryAuditSessionStore,
        body: dict,
    ) -> None:
        response = client.post("/audit", json=body)

        assert response.status_code == 400
        assert response.json()["detail"]
        assert store.count() == 0

    def test_missing_runtime_returns_501_with_suggestion(
        self,
        client: TestClient,
        store: InMemoryAuditSessionStore,
        runtime_error: list[Exception],
    ) -> None:
        runtime_error.append(AutomationRuntimeUnavailableError("Chrome missing", suggestion="Install Chromium."))

        response = _submit(client, ["https://a.example"])

        assert response.status_code == 501
        assert response.json() == {"error": "Chrome missing", "suggestion": "Install Chromium."}
        assert store.count() == 0


class TestAuditStatus:
    def test_unknown_session_returns_404(self, client: TestClient) -> None:
        response = client.get("/audit/doesnotexist")

        assert response.status_code == 404


class TestReportDownload:
    def test_written_reports_are_served_inline(self, client: TestClient) -> None:
        response = _submit(client, ["https://a.example"])
        session = client.get(f"/audit/{response.json()['session_id']}").json()
        html_path = session["results"][0]["report_paths"]["html"]

        report = client.get(html_path)

        assert report.status_code == 200
        assert report.text == "<html><body>report</body></html>"
        assert report.headers["content-type"].startswith("text/html")
        assert report.headers["content-disposition"].startswith("inline")

    @pytest.mark.parametrize("filename", ["missing.json", ".hidden"])
    def test_unknown_reports_return_404(self, client: TestClient, filename: str) -> None:
        assert client.get(f"/reports/{filename}").status_code == 404


def test_health_reports_retained_sessions(client: TestClient) -> None:
    _submit(client, ["https://a.example"])

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "active_sessions": 1}
