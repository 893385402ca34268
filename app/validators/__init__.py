"""
app/validators package marker.
"""

from app.validators.url_validator import is_valid_audit_url, normalize_urls, parse_urls_from_text

__all__ = [
    "is_valid_audit_url",
    "normalize_urls",
    "parse_urls_from_text",
]
