"""
audit_engine/artifacts.py

Naming and persistence of audit report artifacts.

Report files are named ``{host-with-dashes}{-mobile}-{timestamp}.{json|html}``
and batch summaries ``lighthouse-ai-insights-{form_factor}-{timestamp}.txt``,
where the timestamp is an ISO-8601 UTC instant with ':' and '.' replaced by '-'.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from app.domain.audit import ArtifactPaths, FormFactor


def generate_timestamp(now: datetime | None = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}.{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def create_url_slug(url: str) -> str:
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    if not hostname:
        return "invalid-url"
    return hostname.replace(".", "-")


def report_basename(url: str, form_factor: str, timestamp: str) -> str:
    device_suffix = "-mobile" if form_factor == FormFactor.MOBILE else ""
    return f"{create_url_slug(url)}{device_suffix}-{timestamp}"


def insight_filename(form_factor: str, timestamp: str) -> str:
    return f"lighthouse-ai-insights-{form_factor}-{timestamp}.txt"


class ArtifactWriter:
    """
    Writes report files into one directory and returns their public paths.
    """

    def __init__(self, reports_dir: Path, *, url_prefix: str = "/reports") -> None:
        self._reports_dir = Path(reports_dir)
        self._url_prefix = url_prefix.rstrip("/")

    @property
    def reports_dir(self) -> Path:
        return self._reports_dir

    def ensure_directory(self) -> None:
        self._reports_dir.mkdir(parents=True, exist_ok=True)

    def public_path(self, filename: str) -> str:
        return f"{self._url_prefix}/{filename}"

    def write_reports(
        self,
        *,
        url: str,
        form_factor: str,
        structured_report: str,
        rendered_report: str,
        timestamp: str,
    ) -> ArtifactPaths:
        base = self._claim_basename(report_basename(url, form_factor, timestamp))
        json_name = self._write(f"{base}.json", structured_report)
        html_name = self._write(f"{base}.html", rendered_report)
        return ArtifactPaths(
            structured_report=self.public_path(json_name),
            rendered_report=self.public_path(html_name),
        )

    def write_text(self, filename: str, content: str) -> str:
        self.ensure_directory()
        return self.public_path(self._write(filename, content))

    def resolve(self, filename: str) -> Path | None:
        """
        Return the on-disk path for a bare artifact filename, or None if absent.
        """

        if not filename or filename != Path(filename).name or filename.startswith("."):
            return None
        root = self._reports_dir.resolve()
        candidate = (root / filename).resolve()
        if candidate.parent != root or not candidate.is_file():
            return None
        return candidate

    def _claim_basename(self, base: str) -> str:
        # Same host audited twice within one millisecond gets a numeric suffix.
        candidate = base
        counter = 1
        while (self._reports_dir / f"{candidate}.json").exists():
            candidate = f"{base}-{counter}"
            counter += 1
        return candidate

    def _write(self, filename: str, content: str) -> str:
        self.ensure_directory()
        (self._reports_dir / filename).write_text(content, encoding="utf-8")
        return filename
