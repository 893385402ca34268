"""
audit_engine/base.py

Abstract interfaces for the browser process and the audit engine.

The pipeline depends only on these contracts, so either side can be replaced
(or faked in tests) without touching pipeline control flow.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Mapping

from app.domain.audit import Opportunity
from audit_engine.profiles import DeviceProfile


@dataclass(frozen=True)
class EngineResult:
    """
    Raw output of one engine run.

    ``category_scores`` maps category ids to fractions in [0, 1]; a category the
    engine did not report is absent or None. ``opportunities`` keeps the order
    in which the engine listed them.
    """

    category_scores: Mapping[str, float | None]
    opportunities: tuple[Opportunity, ...] = ()
    structured_report: str = ""
    rendered_report: str = ""


@dataclass(frozen=True)
class NavigationOutcome:
    loaded: bool
    error: str | None = None


class BrowserSession(ABC):
    """
    A running, profile-configured browser reachable on a local debug port.
    """

    @property
    @abstractmethod
    def debug_port(self) -> int:
        """Local remote-debugging port the audit engine connects to."""

    @abstractmethod
    def navigate(self, url: str, *, timeout_ms: int, settle_ms: int = 0) -> NavigationOutcome:
        """Load ``url`` with a bounded wait; never raises on load failure."""


class BrowserLauncher(ABC):
    """Starts one isolated browser process per audited URL."""

    @abstractmethod
    def launch(self, profile: DeviceProfile) -> AbstractContextManager[BrowserSession]:
        """
        Return a context manager yielding a configured browser session.

        Leaving the context always releases the browser process.
        """


class BaseAuditEngine(ABC):
    """Abstract base for audit engines driven against a running browser."""

    @abstractmethod
    def run(self, url: str, profile: DeviceProfile, *, debug_port: int) -> EngineResult:
        """Audit ``url`` through the browser listening on ``debug_port``.

        Args:
            url: Absolute URL to audit.
            profile: Emulation and throttling profile for the run.
            debug_port: Local remote-debugging port of the browser instance.

        Returns:
            Category score fractions, opportunities and both report documents.

        Raises:
            AuditEngineError: If the engine fails or exceeds its time budget.
        """
