"""In-memory registry of workflow sessions, one per client."""

import logging
import time
from typing import Callable, Dict, Tuple

from .errors import SessionNotFoundError
from .orchestrator import HairstyleSession, generate_request_id

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Maps session ids to HairstyleSession objects.

    Sessions not touched (created or fetched) for `ttl_seconds` are evicted
    on the next create() or get(). A ttl of None or 0 keeps them forever.
    """

    def __init__(self, session_factory: Callable[[str], HairstyleSession] = None,
                 ttl_seconds: float = None, clock: Callable[[], float] = time.monotonic):
        self._session_factory = session_factory or (lambda session_id: HairstyleSession(session_id=session_id))
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, HairstyleSession] = {}
        self._last_seen: Dict[str, float] = {}

    def _evict_idle(self):
        if not self.ttl_seconds:
            return
        cutoff = self._clock() - self.ttl_seconds
        expired = [sid for sid, seen in self._last_seen.items() if seen < cutoff]
        for session_id in expired:
            self._remove(session_id)
            logger.info(f"SESSION-{session_id}: Evicted after {self.ttl_seconds}s idle")

    def _remove(self, session_id: str):
        session = self._sessions.pop(session_id)
        del self._last_seen[session_id]
        session.reset()

    def create(self) -> Tuple[str, HairstyleSession]:
        self._evict_idle()
        session_id = generate_request_id()
        while session_id in self._sessions:
            session_id = generate_request_id()
        session = self._session_factory(session_id)
        self._sessions[session_id] = session
        self._last_seen[session_id] = self._clock()
        logger.info(f"SESSION-{session_id}: Created")
        return session_id, session

    def get(self, session_id: str) -> HairstyleSession:
        self._evict_idle()
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None
        self._last_seen[session_id] = self._clock()
        return session

    def discard(self, session_id: str):
        if session_id not in self._sessions:
            raise SessionNotFoundError(session_id)
        self._remove(session_id)
        logger.info(f"SESSION-{session_id}: Discarded")

    def __len__(self):
        return len(self._sessions)
