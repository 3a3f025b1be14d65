from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

from iceslide.api.models import BoardView, Difficulty, PointModel, SessionPhase, SessionSnapshot
from iceslide.core.board import BoardModel, Direction, Position
from iceslide.core.movement import BASE_TILE_SECONDS, animation_duration, slide, steps_between
from iceslide.core.request_guard import RequestGuard
from iceslide.fsm import SessionFSM
from iceslide.infra.level_client import LevelProvider, LevelProviderError

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SessionSnapshot], None]


@dataclass(frozen=True, slots=True)
class GameConfig:
    base_tile_seconds: float = BASE_TILE_SECONDS
    default_difficulty: Difficulty = Difficulty.easy
    # Shown before the first move has set a real duration.
    initial_animation_seconds: float = 0.25


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> None:  # pragma: no cover
        ...


class AsyncioScheduler:
    """Run timer callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        asyncio.get_running_loop().call_later(delay, callback)


class Session:
    """Complete mutable state for one play-through, independent of rendering.

    Commands (`request_level`, `move`, `reset`, `change_difficulty`) are plain
    synchronous methods: each runs to completion on the event loop, so no
    command ever sees another half-applied. The only asynchrony is the level
    request (an asyncio task) and the move animation timer; both re-enter the
    session through `_apply_level_*` / `_finish_move`.

    Commands that make no sense right now (moving while loading, during an
    animation or after a win) are ignored. They are the normal result
    of user input racing the UI and must never raise.
    """

    def __init__(
        self,
        *,
        provider: LevelProvider,
        scheduler: Scheduler | None = None,
        config: GameConfig | None = None,
        difficulty: Difficulty | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or str(uuid4())
        self.config = config or GameConfig()
        self._provider = provider
        self._scheduler = scheduler or AsyncioScheduler()

        self._fsm = SessionFSM()
        self._guard = RequestGuard()
        self._inflight: set[asyncio.Task[None]] = set()
        self._listeners: list[SnapshotListener] = []

        self.difficulty: Difficulty = difficulty or self.config.default_difficulty
        self.board: BoardModel | None = None
        self.player: Position | None = None
        self.won = False
        self.win_count = 0
        self.animation_in_flight = False
        self.animation_duration_seconds = self.config.initial_animation_seconds
        self.error: str | None = None

    # -- read side --

    @property
    def phase(self) -> SessionPhase:
        return self._fsm.phase

    @property
    def loading(self) -> bool:
        return self.phase == SessionPhase.loading

    @property
    def pending_request_id(self) -> int:
        return self._guard.latest

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            state=self.phase,
            difficulty=self.difficulty,
            board=BoardView.from_board(self.board) if self.board is not None else None,
            player=PointModel.from_position(self.player) if self.player is not None else None,
            won=self.won,
            win_count=self.win_count,
            loading=self.loading,
            error=self.error,
            animation_in_flight=self.animation_in_flight,
            animation_duration_seconds=self.animation_duration_seconds,
            request_id=self._guard.latest,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    # -- commands --

    def start(self) -> int:
        return self.request_level(self.difficulty)

    def request_level(self, difficulty: Difficulty) -> int:
        token = self._guard.issue()
        self._fsm.request_level()
        self.error = None

        task = asyncio.get_running_loop().create_task(self._load(token, difficulty))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

        logger.debug("session %s: requested %s level (request %s)", self.session_id, difficulty.value, token)
        self._publish()
        return token

    def move(self, direction: Direction) -> bool:
        """Start a slide. Returns True if the player actually moved.

        Listeners are notified even when the move is ignored.
        """

        board = self.board
        origin = self.player
        if board is None or origin is None or self.phase != SessionPhase.ready or self.animation_in_flight or self.won:
            logger.debug("session %s: move %s ignored in phase %s", self.session_id, direction.name, self.phase.value)
            self._publish()
            return False

        target = slide(board, origin, direction)
        if target == origin:
            self._publish()
            return False

        duration = animation_duration(
            board,
            steps_between(origin, target),
            base_tile_seconds=self.config.base_tile_seconds,
        )

        # Logical move is immediate; only the visual transition waits for the timer.
        self.animation_in_flight = True
        self.player = target
        self.animation_duration_seconds = duration
        self._publish()

        self._scheduler.call_later(duration, lambda: self._finish_move(board, target))
        return True

    def reset(self) -> None:
        if self.won:
            # Play again: fetch a fresh puzzle instead of replaying the solved one.
            self.request_level(self.difficulty)
            return
        if self.board is not None:
            self.player = self.board.start
            self.won = False
        self._publish()

    def change_difficulty(self, difficulty: Difficulty) -> None:
        if self.loading and difficulty == self.difficulty:
            logger.debug("session %s: %s level already in flight", self.session_id, difficulty.value)
            self._publish()
            return
        self.difficulty = difficulty
        self.request_level(difficulty)

    async def wait_for_level(self) -> None:
        """Wait until every outstanding level request has settled."""

        while self._inflight:
            await asyncio.gather(*list(self._inflight))

    # -- async completions --

    async def _load(self, token: int, difficulty: Difficulty) -> None:
        try:
            board = await self._provider.get_level(difficulty, request_id=token)
        except LevelProviderError as e:
            self._apply_level_failure(token, str(e))
        except Exception:
            logger.exception("session %s: level provider crashed on request %s", self.session_id, token)
            self._apply_level_failure(token, "Failed to load level")
        else:
            self._apply_level_success(token, board)

    def _apply_level_success(self, token: int, board: BoardModel) -> None:
        if not self._guard.is_current(token):
            logger.debug("session %s: dropping stale level %s (request %s)", self.session_id, board.level_id, token)
            return

        self.board = board
        self.player = board.start
        self.won = False
        self.error = None
        self._fsm.level_loaded()
        logger.info(
            "session %s: loaded level %s (%dx%d, %d rocks)",
            self.session_id,
            board.level_id,
            board.cols,
            board.rows,
            len(board.obstacles),
        )
        self._publish()

    def _apply_level_failure(self, token: int, message: str) -> None:
        if not self._guard.is_current(token):
            logger.debug("session %s: dropping stale failure for request %s", self.session_id, token)
            return

        self.board = None
        self.player = None
        self.won = False
        self.error = message
        self._fsm.level_failed()
        logger.warning("session %s: level request %s failed: %s", self.session_id, token, message)
        self._publish()

    def _finish_move(self, board: BoardModel, target: Position) -> None:
        self.animation_in_flight = False

        # A reload or reset during the animation means this arrival no longer counts.
        arrived = (
            self.board is board
            and self.player == target
            and target == board.end
            and self.phase == SessionPhase.ready
        )
        if arrived:
            self.won = True
            self.win_count += 1
            self._fsm.goal_reached()
            logger.info("session %s: goal reached (%d wins)", self.session_id, self.win_count)

        self._publish()
