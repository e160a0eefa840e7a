"""In-memory session store with idle expiry."""

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from wine_value.core.errors import SessionNotFoundError
from wine_value.core.schema import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Process-local store of session snapshots.

    Stored sessions are never mutated; ``put`` replaces the whole snapshot.
    Sessions idle for longer than the TTL are removed by ``sweep``.
    """

    def __init__(self, ttl_minutes: float = 60.0):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._sessions: dict[str, Session] = {}

    def get(self, session_id: str) -> Session | None:
        """Return the current snapshot, or None."""
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        """
        Return the current snapshot.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def put(self, session: Session) -> None:
        """Store a snapshot, replacing any previous one."""
        self._sessions[session.id] = session

    def delete(self, session_id: str) -> bool:
        """Remove a session. Returns True if it existed."""
        return self._sessions.pop(session_id, None) is not None

    def sweep(self, now: datetime | None = None) -> int:
        """
        Remove sessions idle for longer than the TTL.

        Args:
            now: Reference time (defaults to the current UTC time).

        Returns:
            Number of sessions removed.
        """
        cutoff = (now or datetime.now(UTC)) - self.ttl
        expired = [sid for sid, s in self._sessions.items() if s.updated_at < cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Swept {len(expired)} expired sessions")
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep periodically until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
