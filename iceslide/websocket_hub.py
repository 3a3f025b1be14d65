from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable

from fastapi import WebSocket

from iceslide.api.models import SessionSnapshot

logger = logging.getLogger(__name__)


class SessionWebSocketHub:
    """In-process WebSocket pub/sub keyed by session_id.

    Contract:
      - assign connection to a session via `connect(session_id, websocket)`.
      - push snapshots with `broadcast(session_id, payload)`.
      - `publisher(session_id)` adapts the session's synchronous listener hook
        onto `broadcast`, scheduling it on the running loop.

    Payloads should be JSON-serializable dicts.
    """

    def __init__(self) -> None:
        self._by_session: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()

    async def connect(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_session[session_id].add(websocket)

    async def disconnect(self, session_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._by_session.get(session_id)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._by_session.pop(session_id, None)

    async def broadcast(self, session_id: str, payload: dict[str, object]) -> None:
        async with self._lock:
            conns = list(self._by_session.get(session_id, set()))

        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                logger.debug("dropping dead websocket for session %s", session_id)
                await self.disconnect(session_id, ws)

    def publisher(self, session_id: str) -> Callable[[SessionSnapshot], None]:
        def _publish(snapshot: SessionSnapshot) -> None:
            payload = {"type": "session_updated", "snapshot": snapshot.model_dump(mode="json")}
            task = asyncio.get_running_loop().create_task(self.broadcast(session_id, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        return _publish


hub = SessionWebSocketHub()
