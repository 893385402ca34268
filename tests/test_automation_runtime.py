from __future__ import annotations

from pathlib import Path

import pytest

from app.config import AuditSettings
from audit_engine import environment
from audit_engine.browser import kbps_to_bytes_per_second, network_conditions
from audit_engine.errors import RUNTIME_UNAVAILABLE_MESSAGE, AutomationRuntimeUnavailableError
from audit_engine.profiles import resolve_device_profile


@pytest.fixture()
def chromium(tmp_path: Path) -> Path:
    executable = tmp_path / "chrome"
    executable.write_text("", encoding="utf-8")
    return executable


@pytest.fixture()
def healthy_host(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(environment, "is_serverless_platform", lambda: False)
    monkeypatch.setattr(environment.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(environment, "_bundled_chromium_path", lambda: None)


class TestCheckAutomationRuntime:
    def test_passes_when_everything_is_installed(self, healthy_host: None, chromium: Path) -> None:
        environment.check_automation_runtime(AuditSettings(chromium_executable_path=str(chromium)))

    def test_serverless_hosts_are_rejected_first(
        self, healthy_host: None, chromium: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(environment, "is_serverless_platform", lambda: True)

        with pytest.raises(AutomationRuntimeUnavailableError) as excinfo:
            environment.check_automation_runtime(AuditSettings(chromium_executable_path=str(chromium)))

        assert str(excinfo.value) == RUNTIME_UNAVAILABLE_MESSAGE
        assert "Serverless" in excinfo.value.suggestion

    def test_missing_lighthouse_cli(
        self, healthy_host: None, chromium: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(environment.shutil, "which", lambda name: None)

        with pytest.raises(AutomationRuntimeUnavailableError, match=RUNTIME_UNAVAILABLE_MESSAGE) as excinfo:
            environment.check_automation_runtime(AuditSettings(chromium_executable_path=str(chromium)))

        assert "npm install -g lighthouse" in excinfo.value.suggestion

    def test_missing_chromium(self, healthy_host: None, tmp_path: Path) -> None:
        settings = AuditSettings(chromium_executable_path=str(tmp_path / "absent"))

        with pytest.raises(AutomationRuntimeUnavailableError) as excinfo:
            environment.check_automation_runtime(settings)

        assert "CHROMIUM_EXECUTABLE_PATH" in excinfo.value.suggestion


def test_bundled_chromium_lookup_retries_after_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    answers = [None, "/ms-playwright/chromium/chrome"]
    calls: list[int] = []

    def query() -> str | None:
        calls.append(1)
        return answers[min(len(calls), len(answers)) - 1]

    monkeypatch.setattr(environment, "_chromium_path_cache", {})
    monkeypatch.setattr(environment, "_query_bundled_chromium", query)

    assert environment._bundled_chromium_path() is None
    assert environment._bundled_chromium_path() == "/ms-playwright/chromium/chrome"
    assert environment._bundled_chromium_path() == "/ms-playwright/chromium/chrome"
    assert len(calls) == 2


def test_throughput_conversion_disables_zero() -> None:
    assert kbps_to_bytes_per_second(0) == -1
    assert kbps_to_bytes_per_second(8) == 1024


def test_network_conditions_follow_profile() -> None:
    assert network_conditions(resolve_device_profile("mobile")) == {
        "offline": False,
        "latency": 150,
        "downloadThroughput": 1638.4 * 1024 / 8,
        "uploadThroughput": 750 * 1024 / 8,
    }
    assert network_conditions(resolve_device_profile("desktop"))["downloadThroughput"] == -1
