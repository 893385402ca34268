"""
URL-list upload service.

Reads an uploaded CSV file and returns the syntactically valid URLs found in the
first column of each non-empty row.
"""

from __future__ import annotations

import csv
import io
import logging
from functools import lru_cache

from fastapi import UploadFile

from app.config import get_upload_settings
from app.logging_utils import log_event
from app.validators.url_validator import normalize_urls

logger = logging.getLogger(__name__)


class URLUploadError(ValueError):
    """Raised when an uploaded URL list is unreadable or yields no valid URLs."""


class URLUploadTooLargeError(URLUploadError):
    """Raised when an uploaded file exceeds the configured size limit."""


class URLUploadService:
    """
    Extracts audit URLs from uploaded CSV files.
    """

    def __init__(self, *, max_bytes: int | None = None) -> None:
        self._max_bytes = max_bytes or get_upload_settings().max_bytes

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def extract_urls(self, upload_file: UploadFile) -> list[str]:
        raw_file = upload_file.file
        raw_file.seek(0)
        payload = raw_file.read(self._max_bytes + 1)
        if len(payload) > self._max_bytes:
            raise URLUploadTooLargeError(
                f"CSV file exceeds the {self._max_bytes // (1024 * 1024) or 1} MB limit."
            )
        return self.parse_csv_bytes(payload, filename=upload_file.filename)

    def parse_csv_bytes(self, payload: bytes, *, filename: str | None = None) -> list[str]:
        try:
            text = payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise URLUploadError("CSV must be UTF-8 encoded.") from exc

        try:
            first_column = [
                row[0].strip()
                for row in csv.reader(io.StringIO(text, newline=""))
                if row and row[0].strip()
            ]
        except csv.Error as exc:
            raise URLUploadError(f"Invalid CSV format: {exc}") from exc

        urls = normalize_urls(first_column)
        log_event(
            logger,
            logging.INFO,
            "url_list_parsed",
            filename=filename,
            rows=len(first_column),
            valid_urls=len(urls),
        )
        if not urls:
            raise URLUploadError("No valid URLs found in CSV file.")
        return urls


@lru_cache(maxsize=1)
def get_url_upload_service() -> URLUploadService:
    return URLUploadService()
