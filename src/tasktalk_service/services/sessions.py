"""In-memory registry of signed-in sessions and their credentials."""

import asyncio
import logging
import secrets
import time
from collections.abc import Callable

from ..models.auth import Credential

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Holds one Credential per session id.

    Credentials are never shared between sessions. The registry also tracks
    pending OAuth ``state`` values issued by the login redirect; a state
    expires ``state_ttl_seconds`` after issue and expired states are pruned
    whenever a new one is issued.
    """

    def __init__(self, state_ttl_seconds: float = 600.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._credentials: dict[str, Credential] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._pending_states: dict[str, float] = {}
        self._state_ttl = state_ttl_seconds
        self._clock = clock

    def create(self, credential: Credential) -> str:
        """Register a new session and return its id."""
        session_id = secrets.token_urlsafe(32)
        self._credentials[session_id] = credential
        logger.info("Session created")
        return session_id

    def get(self, session_id: str | None) -> Credential | None:
        if not session_id:
            return None
        return self._credentials.get(session_id)

    def replace(self, session_id: str, credential: Credential) -> None:
        """Swap in the credential produced by a refresh."""
        if session_id in self._credentials:
            self._credentials[session_id] = credential

    def remove(self, session_id: str) -> None:
        self._credentials.pop(session_id, None)
        self._locks.pop(session_id, None)

    def lock(self, session_id: str) -> asyncio.Lock:
        """Lock serialising credential refresh for one session."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks.setdefault(session_id, asyncio.Lock())
        return lock

    @property
    def pending_state_count(self) -> int:
        return len(self._pending_states)

    def _prune_states(self, now: float) -> None:
        expired = [state for state, issued_at in self._pending_states.items() if now - issued_at >= self._state_ttl]
        for state in expired:
            del self._pending_states[state]

    def issue_state(self) -> str:
        now = self._clock()
        self._prune_states(now)
        state = secrets.token_urlsafe(16)
        self._pending_states[state] = now
        return state

    def consume_state(self, state: str | None) -> bool:
        """Return True once for each unexpired state previously issued."""
        if not state:
            return False
        issued_at = self._pending_states.pop(state, None)
        if issued_at is None:
            return False
        return self._clock() - issued_at < self._state_ttl
