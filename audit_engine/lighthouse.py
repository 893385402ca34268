"""
audit_engine/lighthouse.py

Lighthouse CLI engine attached to an already-running Chromium instance.
"""

from __future__ import annotations

import json
import logging
import subprocess
import tempfile
from collections.abc import Callable, Mapping
from pathlib import Path

from app.domain.audit import FormFactor, Opportunity
from app.logging_utils import log_event
from audit_engine.base import BaseAuditEngine, EngineResult
from audit_engine.errors import (
    RUNTIME_UNAVAILABLE_MESSAGE,
    TIMEOUT_RUNTIME_CODES,
    AuditEngineError,
    AutomationRuntimeUnavailableError,
    EngineReportError,
    EngineTimeoutError,
)
from audit_engine.profiles import DeviceProfile

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]

_OUTPUT_STEM = "audit"
_STDERR_TAIL_CHARS = 500


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _flag(name: str, enabled: bool) -> str:
    return f"--{name}" if enabled else f"--no-{name}"


def parse_lighthouse_report(structured_report: str, rendered_report: str) -> EngineResult:
    """
    Extract category fractions and opportunities from a Lighthouse JSON report.

    Opportunities keep the order in which the report lists its audits.
    """

    try:
        lhr = json.loads(structured_report)
    except json.JSONDecodeError as exc:
        raise EngineReportError(f"Lighthouse report is not valid JSON: {exc}") from exc
    if not isinstance(lhr, Mapping):
        raise EngineReportError("Lighthouse report must be a JSON object.")

    runtime_error = lhr.get("runtimeError")
    if isinstance(runtime_error, Mapping) and runtime_error.get("code"):
        code = str(runtime_error["code"])
        message = str(runtime_error.get("message") or code)
        if code in TIMEOUT_RUNTIME_CODES:
            raise EngineTimeoutError(message, code=code)
        raise AuditEngineError(message, code=code)

    categories = lhr.get("categories") or {}
    category_scores: dict[str, float | None] = {}
    for category_id, category in categories.items():
        if isinstance(category, Mapping):
            category_scores[category_id] = category.get("score")

    opportunities: list[Opportunity] = []
    for audit in (lhr.get("audits") or {}).values():
        if not isinstance(audit, Mapping):
            continue
        details = audit.get("details")
        if not isinstance(details, Mapping) or details.get("type") != "opportunity":
            continue
        numeric_value = audit.get("numericValue")
        opportunities.append(
            Opportunity(
                title=str(audit.get("title", "")),
                display_value=audit.get("displayValue"),
                numeric_value=float(numeric_value) if isinstance(numeric_value, (int, float)) else None,
            )
        )

    return EngineResult(
        category_scores=category_scores,
        opportunities=tuple(opportunities),
        structured_report=structured_report,
        rendered_report=rendered_report,
    )


class LighthouseCLIEngine(BaseAuditEngine):
    """
    Run the ``lighthouse`` CLI as a subprocess against a local debugging port.
    """

    def __init__(
        self,
        *,
        binary: str = "lighthouse",
        timeout_seconds: float = 180.0,
        max_wait_for_load_ms: int = 90_000,
        runner: Runner = subprocess.run,
    ) -> None:
        self._binary = binary
        self._timeout_seconds = timeout_seconds
        self._max_wait_for_load_ms = max_wait_for_load_ms
        self._runner = runner

    def build_command(
        self,
        url: str,
        profile: DeviceProfile,
        *,
        debug_port: int,
        output_path: Path,
    ) -> list[str]:
        command = [
            self._binary,
            url,
            f"--port={debug_port}",
            "--output=json",
            "--output=html",
            f"--output-path={output_path}",
            f"--form-factor={profile.form_factor}",
            _flag("screenEmulation.mobile", profile.is_mobile),
            f"--screenEmulation.width={profile.viewport_width}",
            f"--screenEmulation.height={profile.viewport_height}",
            f"--screenEmulation.deviceScaleFactor={_format_number(profile.device_scale_factor)}",
            "--no-screenEmulation.disabled",
            "--throttling-method=simulate",
            f"--throttling.rttMs={_format_number(profile.rtt_ms)}",
            f"--throttling.throughputKbps={_format_number(profile.throughput_kbps)}",
            f"--throttling.requestLatencyMs={_format_number(profile.network_latency_ms)}",
            f"--throttling.downloadThroughputKbps={_format_number(profile.download_throughput_kbps)}",
            f"--throttling.uploadThroughputKbps={_format_number(profile.upload_throughput_kbps)}",
            f"--throttling.cpuSlowdownMultiplier={_format_number(profile.cpu_slowdown_multiplier)}",
            f"--emulatedUserAgent={profile.user_agent}",
            f"--max-wait-for-load={self._max_wait_for_load_ms}",
            "--quiet",
        ]
        if profile.form_factor == FormFactor.DESKTOP:
            command.append("--preset=desktop")
        if profile.extra_headers:
            command.append(f"--extra-headers={json.dumps(profile.headers, sort_keys=True)}")
        return command

    def run(self, url: str, profile: DeviceProfile, *, debug_port: int) -> EngineResult:
        with tempfile.TemporaryDirectory(prefix="lighthouse-") as workdir:
            output_path = Path(workdir) / _OUTPUT_STEM
            command = self.build_command(
                url,
                profile,
                debug_port=debug_port,
                output_path=output_path,
            )
            log_event(
                logger,
                logging.INFO,
                "lighthouse_started",
                url=url,
                form_factor=profile.form_factor,
                debug_port=debug_port,
            )
            completed = self._invoke(command)
            if completed.returncode != 0:
                stderr = (completed.stderr or "").strip()[-_STDERR_TAIL_CHARS:]
                raise AuditEngineError(
                    f"Lighthouse exited with status {completed.returncode}: {stderr or 'no output'}"
                )
            return parse_lighthouse_report(
                self._read_output(output_path, "json"),
                self._read_output(output_path, "html"),
            )

    def _invoke(self, command: list[str]) -> subprocess.CompletedProcess:
        try:
            return self._runner(
                command,
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
                check=False,
            )
        except FileNotFoundError as exc:
            raise AutomationRuntimeUnavailableError(RUNTIME_UNAVAILABLE_MESSAGE) from exc
        except subprocess.TimeoutExpired as exc:
            raise EngineTimeoutError(
                f"Lighthouse timed out after {self._timeout_seconds:g} seconds."
            ) from exc

    @staticmethod
    def _read_output(output_path: Path, extension: str) -> str:
        report_path = output_path.with_name(f"{output_path.name}.report.{extension}")
        try:
            return report_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise EngineReportError(f"Lighthouse did not produce a {extension} report.") from exc
