"""
app/repositories/audit_session_store.py

Process-local storage for batch audit session progress.

Each session is owned by exactly one pipeline task, which is the only writer for
that id; any number of status pollers may read concurrently. Records are kept as
immutable ``AuditSession`` snapshots and replaced wholesale under a lock, so a
reader always sees either the previous or the next fully-applied state.

Session ids are ``<9 base-36 chars of creation epoch millis><10 random base-36
chars>``. The fixed-width time prefix makes ids sort chronologically and lets the
sweeper recover the creation time without a secondary index.
"""

from __future__ import annotations

import secrets
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from app.config import get_session_settings
from app.domain.audit import (
    AuditResult,
    AuditSession,
    SessionPhase,
    SessionStatus,
)

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_TIME_WIDTH = 9
_ID_RANDOM_WIDTH = 10

Clock = Callable[[], datetime]


class SessionStoreError(Exception):
    """Base exception for session store failures."""


class SessionNotFoundError(SessionStoreError):
    """Raised when a write targets an unknown or already-evicted session."""


class SessionStateError(SessionStoreError):
    """Raised when a write would violate session lifecycle invariants."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("Only non-negative integers can be encoded.")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def encode_session_id(created_ms: int, random_part: str | None = None) -> str:
    """
    Build a session id from a creation timestamp (epoch millis) and a random suffix.
    """

    time_part = _to_base36(created_ms).rjust(_ID_TIME_WIDTH, "0")
    if len(time_part) > _ID_TIME_WIDTH:
        raise ValueError(f"Timestamp {created_ms} does not fit the session id layout.")
    if random_part is None:
        random_part = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(_ID_RANDOM_WIDTH))
    return f"{time_part}{random_part}"


def decode_session_timestamp(session_id: str) -> datetime | None:
    """
    Recover the creation time encoded in a session id, or None if malformed.
    """

    time_part = session_id[:_ID_TIME_WIDTH]
    if len(time_part) != _ID_TIME_WIDTH:
        return None
    try:
        created_ms = int(time_part, 36)
    except ValueError:
        return None
    return datetime.fromtimestamp(created_ms / 1000, tz=timezone.utc)


class AuditSessionStore(ABC):
    """
    Storage contract used by the audit pipeline and status endpoints.
    """

    @abstractmethod
    def create(self, total: int) -> str:
        """Create a processing session expecting ``total`` results and return its id."""

    @abstractmethod
    def get(self, session_id: str) -> AuditSession | None:
        """Return the latest snapshot for ``session_id`` or None if unknown."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of retained sessions."""

    @abstractmethod
    def record_progress(self, session_id: str, *, url: str, index: int) -> AuditSession:
        """Mark ``url`` (at position ``index``) as the URL currently being audited."""

    @abstractmethod
    def append_result(self, session_id: str, result: AuditResult) -> AuditSession:
        """Append the next result in submission order."""

    @abstractmethod
    def begin_summarizing(self, session_id: str) -> AuditSession:
        """Flag that all URLs are done and the batch summary is being generated."""

    @abstractmethod
    def complete(
        self,
        session_id: str,
        *,
        insight_artifact_path: str | None = None,
    ) -> AuditSession:
        """Move the session to the terminal ``completed`` status."""

    @abstractmethod
    def fail(self, session_id: str, *, error: str) -> AuditSession:
        """Move the session to the terminal ``error`` status."""

    @abstractmethod
    def sweep(self, now: datetime | None = None) -> int:
        """Evict sessions older than the retention window; return the eviction count."""


class InMemoryAuditSessionStore(AuditSessionStore):
    """
    Thread-safe dictionary-backed session store with time-bounded retention.
    """

    def __init__(
        self,
        *,
        retention: timedelta = timedelta(hours=24),
        clock: Clock | None = None,
    ) -> None:
        if retention <= timedelta(0):
            raise ValueError("Session retention must be positive.")
        self._retention = retention
        self._clock = clock or _utcnow
        self._sessions: dict[str, AuditSession] = {}
        self._last_id_ms = 0
        self._lock = threading.Lock()

    @property
    def retention(self) -> timedelta:
        return self._retention

    def create(self, total: int) -> str:
        if total < 1:
            raise ValueError("A session must expect at least one result.")

        now = self._clock()
        with self._lock:
            created_ms = int(now.timestamp() * 1000)
            if created_ms <= self._last_id_ms:
                created_ms = self._last_id_ms + 1
            self._last_id_ms = created_ms

            session_id = encode_session_id(created_ms)
            while session_id in self._sessions:
                session_id = encode_session_id(created_ms)

            self._sessions[session_id] = AuditSession(
                session_id=session_id,
                total=total,
                created_at=now,
                updated_at=now,
            )
        return session_id

    def get(self, session_id: str) -> AuditSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def record_progress(self, session_id: str, *, url: str, index: int) -> AuditSession:
        with self._lock:
            session = self._require_processing(session_id)
            if index != len(session.results) or index >= session.total:
                raise SessionStateError(
                    f"Out-of-order progress for session {session_id}: "
                    f"index={index} results={len(session.results)} total={session.total}"
                )
            return self._store(
                session,
                current_url=url,
                progress=index,
            )

    def append_result(self, session_id: str, result: AuditResult) -> AuditSession:
        with self._lock:
            session = self._require_processing(session_id)
            if len(session.results) >= session.total:
                raise SessionStateError(
                    f"Session {session_id} already holds all {session.total} results."
                )
            results = (*session.results, result)
            return self._store(
                session,
                results=results,
                progress=len(results),
            )

    def begin_summarizing(self, session_id: str) -> AuditSession:
        with self._lock:
            session = self._require_processing(session_id)
            return self._store(
                session,
                phase=SessionPhase.SUMMARIZING,
                current_url=None,
            )

    def complete(
        self,
        session_id: str,
        *,
        insight_artifact_path: str | None = None,
    ) -> AuditSession:
        with self._lock:
            session = self._require_processing(session_id)
            return self._store(
                session,
                status=SessionStatus.COMPLETED,
                phase=SessionPhase.DONE,
                current_url=None,
                insight_artifact_path=insight_artifact_path,
            )

    def fail(self, session_id: str, *, error: str) -> AuditSession:
        with self._lock:
            session = self._require_processing(session_id)
            return self._store(
                session,
                status=SessionStatus.ERROR,
                phase=SessionPhase.DONE,
                current_url=None,
                error=error,
            )

    def sweep(self, now: datetime | None = None) -> int:
        cutoff = (now or self._clock()) - self._retention
        with self._lock:
            expired = [
                session_id
                for session_id, session in self._sessions.items()
                if (decode_session_timestamp(session_id) or session.created_at) <= cutoff
            ]
            for session_id in expired:
                del self._sessions[session_id]
        return len(expired)

    def _require_processing(self, session_id: str) -> AuditSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Audit session not found: {session_id}")
        if session.is_terminal:
            raise SessionStateError(
                f"Audit session {session_id} is already {session.status}."
            )
        return session

    def _store(self, session: AuditSession, **changes: object) -> AuditSession:
        updated = replace(session, updated_at=self._clock(), **changes)
        self._sessions[session.session_id] = updated
        return updated


@lru_cache(maxsize=1)
def get_audit_session_store() -> InMemoryAuditSessionStore:
    """
    Build and cache the process-wide session store.
    """

    settings = get_session_settings()
    return InMemoryAuditSessionStore(retention=timedelta(hours=settings.retention_hours))
