"""In-process store for import sessions.

The store map is guarded by one short-held lock used only for insert,
lookup and delete. Each session also has its own lock, taken through
locked(), which serializes the wizard stages running against that session
while stages of different sessions run concurrently. Sessions idle for
longer than the TTL are dropped; later calls with their id fail with
SessionNotFoundError. Nothing is persisted: a restart loses in-flight
imports.

Any replacement (e.g. a shared cache) needs the same get / put / delete /
compare_and_transition / locked surface.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from .errors import SessionNotFoundError, SessionStateError
from .models import ImportSession

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60


class InMemorySessionStore:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, ImportSession] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._store_lock = threading.Lock()

    def __len__(self) -> int:
        with self._store_lock:
            return len(self._sessions)

    def put(self, session: ImportSession) -> None:
        with self._store_lock:
            self._purge_locked()
            session.last_access = self._clock()
            self._sessions[session.id] = session
            self._locks.setdefault(session.id, threading.Lock())

    def get(self, session_id: str) -> ImportSession:
        with self._store_lock:
            self._purge_locked()
            return self._touch(session_id)

    def delete(self, session_id: str) -> None:
        with self._store_lock:
            self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)

    def compare_and_transition(
        self, session_id: str, expected: str | tuple[str, ...], new_stage: str
    ) -> ImportSession:
        """Move a session to new_stage if it is currently in an expected stage.

        Raises:
            SessionNotFoundError: unknown or expired id.
            SessionStateError: the session is in another stage.
        """
        if isinstance(expected, str):
            expected = (expected,)
        with self._store_lock:
            session = self._touch(session_id)
            if session.stage not in expected:
                raise SessionStateError(session_id, session.stage, expected)
            old_stage, session.stage = session.stage, new_stage
        logger.info("Session %s: %s -> %s", session_id, old_stage, new_stage)
        return session

    @contextmanager
    def locked(self, session_id: str) -> Iterator[ImportSession]:
        """Hold the session's own lock for the duration of one stage."""
        with self._store_lock:
            self._purge_locked()
            lock = self._locks.get(session_id)
            if lock is None or session_id not in self._sessions:
                raise SessionNotFoundError(session_id)
        with lock:
            # The session may have been deleted while we waited for the lock
            yield self.get(session_id)

    def purge_expired(self) -> int:
        with self._store_lock:
            return self._purge_locked()

    # ── internals (store lock held) ─────────────────────────

    def _touch(self, session_id: str) -> ImportSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.last_access = self._clock()
        return session

    def _purge_locked(self) -> int:
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            sid for sid, s in self._sessions.items()
            if s.last_access < cutoff and not self._locks[sid].locked()
        ]
        for sid in expired:
            del self._sessions[sid]
            del self._locks[sid]
        if expired:
            logger.info("Expired %d idle import session(s)", len(expired))
        return len(expired)
