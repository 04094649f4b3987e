from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

from tower_defense.core.session import DEFAULT_SPAWN_STAGGER_MS, Session, now_ms

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps session ids to live Sessions.

    Exactly one Session exists per id. The methods never await, so on a single
    event loop each insert/remove is atomic.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = now_ms,
        spawn_stagger_ms: float = DEFAULT_SPAWN_STAGGER_MS,
    ) -> None:
        self._sessions: dict[str, Session] = {}
        self._clock = clock
        self._spawn_stagger_ms = spawn_stagger_ms

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        # Snapshot so callers may remove sessions while iterating.
        return iter(list(self._sessions.values()))

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id, now=self._clock(), spawn_stagger_ms=self._spawn_stagger_ms)
            self._sessions[session_id] = session
            logger.info("session %s created", session_id)
        return session

    def remove(self, session_id: str) -> Session | None:
        """Forget a session. Its queued spawns go with it and never fire."""

        session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info("session %s destroyed", session_id)
        return session
