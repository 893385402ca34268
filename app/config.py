"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

_ALLOWED_LLM_ADAPTERS = {"openai", "mock"}


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = _project_root()
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _resolve_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@dataclass(frozen=True)
class AuditSettings:
    """
    Runtime settings for the per-URL audit pipeline.
    """

    reports_dir: Path = Path("reports")
    navigation_timeout_ms: int = 45_000
    settle_delay_ms: int = 2_000
    engine_timeout_seconds: float = 180.0
    max_wait_for_load_ms: int = 90_000
    lighthouse_binary: str = "lighthouse"
    chromium_executable_path: str | None = None
    bypass_header: str = "x-vercel-protection-bypass"
    reports_url_prefix: str = "/reports"


@dataclass(frozen=True)
class SessionSettings:
    """
    Retention and sweep settings for in-memory audit sessions.
    """

    retention_hours: float = 24.0
    sweep_interval_minutes: float = 60.0


@dataclass(frozen=True)
class UploadSettings:
    """
    Limits for URL-list uploads.
    """

    max_bytes: int = 5 * 1024 * 1024


@dataclass(frozen=True)
class LLMSettings:
    """
    Text-generation adapter settings for batch insight summaries.
    """

    adapter: str = "openai"
    model: str = "gpt-4o"
    max_tokens: int = 2048
    temperature: float = 0.7
    base_url: str | None = None


@lru_cache(maxsize=1)
def get_audit_settings() -> AuditSettings:
    """
    Return cached audit pipeline settings from environment variables.
    """

    return AuditSettings(
        reports_dir=_resolve_path(_get_str_env("REPORTS_DIR", "reports")),
        navigation_timeout_ms=max(1_000, _get_int_env("AUDIT_NAVIGATION_TIMEOUT_MS", 45_000)),
        settle_delay_ms=max(0, _get_int_env("AUDIT_SETTLE_DELAY_MS", 2_000)),
        engine_timeout_seconds=max(10.0, _get_float_env("AUDIT_ENGINE_TIMEOUT_SECONDS", 180.0)),
        max_wait_for_load_ms=max(1_000, _get_int_env("AUDIT_MAX_WAIT_FOR_LOAD_MS", 90_000)),
        lighthouse_binary=_get_str_env("LIGHTHOUSE_BINARY", "lighthouse"),
        chromium_executable_path=_get_optional_str_env("CHROMIUM_EXECUTABLE_PATH"),
        bypass_header=_get_str_env("AUDIT_BYPASS_HEADER", "x-vercel-protection-bypass"),
        reports_url_prefix=_get_str_env("REPORTS_URL_PREFIX", "/reports").rstrip("/") or "/reports",
    )


@lru_cache(maxsize=1)
def get_session_settings() -> SessionSettings:
    """
    Return cached session retention settings.
    """

    return SessionSettings(
        retention_hours=max(0.1, _get_float_env("SESSION_RETENTION_HOURS", 24.0)),
        sweep_interval_minutes=max(1.0, _get_float_env("SESSION_SWEEP_INTERVAL_MINUTES", 60.0)),
    )


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    """
    Return cached URL upload settings.
    """

    return UploadSettings(
        max_bytes=max(1024, _get_int_env("UPLOAD_MAX_BYTES", 5 * 1024 * 1024)),
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """
    Return cached LLM adapter settings.
    """

    return LLMSettings(
        adapter=_get_str_env("LLM_ADAPTER", "openai").lower(),
        model=_get_str_env("LLM_MODEL", "gpt-4o"),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 2048)),
        temperature=min(2.0, max(0.0, _get_float_env("LLM_TEMPERATURE", 0.7))),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
    )


def is_serverless_platform() -> bool:
    """
    Detect serverless hosts where a local Chromium process cannot be launched.
    """

    _load_env_once()
    if _get_bool_env("AUDIT_ALLOW_SERVERLESS", False):
        return False
    return bool(os.getenv("VERCEL") or os.getenv("AWS_LAMBDA_FUNCTION_NAME"))


def validate_settings() -> list[str]:
    """
    Return human-readable problems with the current environment configuration.
    """

    errors: list[str] = []

    adapter = _get_str_env("LLM_ADAPTER", "openai").lower()
    if adapter not in _ALLOWED_LLM_ADAPTERS:
        errors.append(
            f"LLM_ADAPTER='{adapter}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_LLM_ADAPTERS)}."
        )

    log_level = _get_str_env("LOG_LEVEL", "INFO").upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        errors.append(f"LOG_LEVEL='{log_level}' is not a valid logging level.")

    reports_dir = _resolve_path(_get_str_env("REPORTS_DIR", "reports"))
    if reports_dir.exists() and not reports_dir.is_dir():
        errors.append(f"REPORTS_DIR='{reports_dir}' exists and is not a directory.")

    return errors
