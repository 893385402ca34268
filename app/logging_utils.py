"""
Structured logging helpers for audit workflows.
"""

from __future__ import annotations

import json
import logging
from typing import Any

_SECRET_FIELD_MARKERS = ("api_key", "token", "credential", "secret")


def _is_secret_field(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in _SECRET_FIELD_MARKERS)


def mask_secret(value: str | None) -> str | None:
    """
    Reduce a credential to a short fingerprint safe for log output.
    """

    if not value:
        return None
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}***"


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    Fields whose names look like credentials are masked before serialization.
    """

    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {"event": event}
    for name, value in fields.items():
        if _is_secret_field(name) and isinstance(value, str):
            payload[name] = mask_secret(value)
        else:
            payload[name] = value
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
