from __future__ import annotations

import logging
from collections.abc import Callable

from iceslide.api.models import Difficulty
from iceslide.infra.level_client import LevelProvider
from iceslide.session import GameConfig, Scheduler, Session, SnapshotListener

logger = logging.getLogger(__name__)


class SessionRegistry:
    """In-process session registry.

    Sessions live until removed or until the process exits; nothing is persisted. One registry
    shares a single level provider (and its HTTP connection pool) across sessions.
    """

    def __init__(
        self,
        *,
        provider: LevelProvider,
        config: GameConfig | None = None,
        scheduler_factory: Callable[[], Scheduler] | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or GameConfig()
        self._scheduler_factory = scheduler_factory
        self._sessions: dict[str, Session] = {}
        self._unsubscribers: dict[str, list[Callable[[], None]]] = {}

    def create_session(self, *, difficulty: Difficulty | None = None) -> Session:
        """Create a session and kick off its first level request.

        Must be called from within the running event loop.
        """

        scheduler = self._scheduler_factory() if self._scheduler_factory is not None else None
        session = Session(provider=self.provider, scheduler=scheduler, config=self.config, difficulty=difficulty)
        self._sessions[session.session_id] = session
        logger.info("created session %s (%s)", session.session_id, session.difficulty.value)
        session.start()
        return session

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def require_session(self, session_id: str) -> Session:
        session = self.get_session(session_id)
        if session is None:
            raise ValueError("Session not found")
        return session

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def watch(self, session_id: str, listener: SnapshotListener) -> None:
        """Subscribe `listener` to a session until the session is removed."""

        session = self.require_session(session_id)
        self._unsubscribers.setdefault(session_id, []).append(session.subscribe(listener))

    def remove_session(self, session_id: str) -> Session:
        """Drop a session and detach every listener added through `watch`.

        Level requests still in flight finish on the detached session and
        reach nobody.
        """

        session = self.require_session(session_id)
        del self._sessions[session_id]
        for unsubscribe in self._unsubscribers.pop(session_id, []):
            unsubscribe()
        logger.info("removed session %s", session_id)
        return session
