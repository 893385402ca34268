"""
frontend/client.py

HTTP client and table helpers used by the Streamlit dashboard.
"""

from __future__ import annotations

import os
from typing import Any

import pandas as pd
import requests

DEFAULT_API_BASE_URL = "http://localhost:8000"

SCORE_COLUMNS: tuple[str, ...] = ("performance", "accessibility", "best-practices", "seo", "pwa")


class AuditAPIError(RuntimeError):
    """
    Raised when the audit API rejects a request or cannot be reached.
    """

    def __init__(self, message: str, *, status_code: int | None = None, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.suggestion = suggestion


class AuditAPIClient:
    """
    Thin wrapper over the audit HTTP endpoints.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = (base_url or os.getenv("AUDIT_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def submit_audit(
        self,
        urls: list[str],
        *,
        form_factor: str,
        summarizer_api_key: str | None = None,
        bypass_token: str | None = None,
    ) -> dict[str, Any]:
        config: dict[str, Any] = {"form_factor": form_factor}
        if summarizer_api_key:
            config["summarizer_api_key"] = summarizer_api_key
        if bypass_token:
            config["bypass_token"] = bypass_token
        return self._request("POST", "/audit", json={"urls": urls, "config": config})

    def get_status(self, session_id: str) -> dict[str, Any]:
        return self._request("GET", f"/audit/{session_id}")

    def upload_csv(self, filename: str, content: bytes) -> list[str]:
        payload = self._request(
            "POST",
            "/upload-csv",
            files={"file": (filename, content, "text/csv")},
        )
        return list(payload.get("urls", []))

    def artifact_url(self, public_path: str | None) -> str | None:
        if not public_path:
            return None
        return f"{self._base_url}{public_path}"

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._session.request(
                method,
                f"{self._base_url}{path}",
                timeout=self._timeout_seconds,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise AuditAPIError(f"Audit API unreachable at {self._base_url}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400:
            message = payload.get("detail") or payload.get("error") or response.reason
            raise AuditAPIError(
                str(message),
                status_code=response.status_code,
                suggestion=payload.get("suggestion"),
            )
        return payload


def results_to_frame(results: list[dict[str, Any]]) -> pd.DataFrame:
    """
    Flatten session results into one row per URL for tabular display.
    """

    rows: list[dict[str, Any]] = []
    for result in results:
        row: dict[str, Any] = {"url": result.get("url")}
        scores = result.get("scores")
        if scores:
            for column in SCORE_COLUMNS:
                row[column] = scores.get(column)
            row["top_opportunity"] = next(
                (item.get("title") for item in result.get("opportunities") or []),
                None,
            )
            row["error"] = None
        else:
            for column in SCORE_COLUMNS:
                row[column] = None
            row["top_opportunity"] = None
            row["error"] = result.get("error")
        rows.append(row)

    return pd.DataFrame(rows, columns=["url", *SCORE_COLUMNS, "top_opportunity", "error"])
