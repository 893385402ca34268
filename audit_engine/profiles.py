"""
audit_engine/profiles.py

Device emulation profiles for desktop and mobile audits.

Resolution is pure: the same ``(form_factor, bypass_token)`` pair always yields
an equal ``DeviceProfile`` whose ``to_config()`` serializes identically.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any

from app.domain.audit import FORM_FACTORS, FormFactor

DEFAULT_BYPASS_HEADER = "x-vercel-protection-bypass"

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_7_1 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/14.1.2 Mobile/15E148 Safari/604.1"
)


@dataclass(frozen=True)
class DeviceProfile:
    """
    Immutable emulation, throttling and header bundle for one form factor.

    Throughput values of 0 mean the link is not throttled.
    """

    form_factor: str
    viewport_width: int
    viewport_height: int
    device_scale_factor: float
    is_mobile: bool
    network_latency_ms: float
    rtt_ms: float
    throughput_kbps: float
    download_throughput_kbps: float
    upload_throughput_kbps: float
    cpu_slowdown_multiplier: float
    user_agent: str
    extra_headers: tuple[tuple[str, str], ...] = ()

    @property
    def headers(self) -> dict[str, str]:
        return dict(self.extra_headers)

    def to_config(self) -> dict[str, Any]:
        return {
            "form_factor": self.form_factor,
            "screen_emulation": {
                "mobile": self.is_mobile,
                "width": self.viewport_width,
                "height": self.viewport_height,
                "device_scale_factor": self.device_scale_factor,
            },
            "throttling": {
                "rtt_ms": self.rtt_ms,
                "throughput_kbps": self.throughput_kbps,
                "request_latency_ms": self.network_latency_ms,
                "download_throughput_kbps": self.download_throughput_kbps,
                "upload_throughput_kbps": self.upload_throughput_kbps,
                "cpu_slowdown_multiplier": self.cpu_slowdown_multiplier,
            },
            "user_agent": self.user_agent,
            "extra_headers": self.headers,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_config(), sort_keys=True, separators=(",", ":"))


_DESKTOP_PROFILE = DeviceProfile(
    form_factor=FormFactor.DESKTOP,
    viewport_width=1350,
    viewport_height=940,
    device_scale_factor=1,
    is_mobile=False,
    network_latency_ms=0,
    rtt_ms=40,
    throughput_kbps=10240,
    download_throughput_kbps=0,
    upload_throughput_kbps=0,
    cpu_slowdown_multiplier=1,
    user_agent=DESKTOP_USER_AGENT,
)

_MOBILE_PROFILE = DeviceProfile(
    form_factor=FormFactor.MOBILE,
    viewport_width=375,
    viewport_height=812,
    device_scale_factor=2,
    is_mobile=True,
    network_latency_ms=150,
    rtt_ms=150,
    throughput_kbps=1638.4,
    download_throughput_kbps=1638.4,
    upload_throughput_kbps=750,
    cpu_slowdown_multiplier=4,
    user_agent=MOBILE_USER_AGENT,
)

_BASE_PROFILES: dict[str, DeviceProfile] = {
    FormFactor.DESKTOP: _DESKTOP_PROFILE,
    FormFactor.MOBILE: _MOBILE_PROFILE,
}


def resolve_device_profile(
    form_factor: str,
    bypass_token: str | None = None,
    *,
    bypass_header: str = DEFAULT_BYPASS_HEADER,
) -> DeviceProfile:
    """
    Return the emulation profile for ``form_factor``.

    A bypass token is added to ``extra_headers`` the same way for every profile.
    """

    normalized = (form_factor or "").strip().lower()
    if normalized not in FORM_FACTORS:
        raise ValueError(
            f"Unknown form factor '{form_factor}'. Allowed values: {sorted(FORM_FACTORS)}."
        )

    profile = _BASE_PROFILES[normalized]
    token = (bypass_token or "").strip()
    if not token:
        return profile

    headers = {**profile.headers, bypass_header: token}
    return replace(profile, extra_headers=tuple(sorted(headers.items())))
