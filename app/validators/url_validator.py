"""
app/validators/url_validator.py

Syntactic validation of absolute URLs submitted for auditing.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urlsplit

# Narrower than "any absolute URL" on purpose: Lighthouse only audits http(s) pages.
ALLOWED_SCHEMES = frozenset({"http", "https"})

_TEXT_SEPARATORS = re.compile(r"[\n,]")


def is_valid_audit_url(candidate: object) -> bool:
    """
    Return True for an absolute http(s) URL with a network location.
    """

    if not isinstance(candidate, str):
        return False
    value = candidate.strip()
    if not value or any(char.isspace() for char in value):
        return False
    try:
        parts = urlsplit(value)
        # Accessing .port validates the port component.
        _ = parts.port
    except ValueError:
        return False
    return parts.scheme.lower() in ALLOWED_SCHEMES and bool(parts.hostname)


def normalize_urls(candidates: Iterable[object]) -> list[str]:
    """
    Keep the valid URLs, trimmed, in their original order.

    Invalid entries are dropped silently; duplicates are kept.
    """

    return [
        candidate.strip()
        for candidate in candidates
        if is_valid_audit_url(candidate)
    ]


def parse_urls_from_text(text: str) -> list[str]:
    """
    Split newline- or comma-separated text and keep the valid URLs.
    """

    return normalize_urls(part.strip() for part in _TEXT_SEPARATORS.split(text or ""))
