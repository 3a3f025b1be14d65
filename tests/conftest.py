from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from iceslide.api.models import Difficulty
from iceslide.core.board import BoardModel, Position
from iceslide.infra.level_client import LevelProviderError


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs.

    In CI we don't auto-load `.env`, so tests never depend on a developer's
    local level service settings.
    """

    if os.environ.get("CI"):
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture(autouse=True)
def _isolated_registry() -> Generator[None, None, None]:
    """Every test starts and ends without a process-wide session registry."""

    from iceslide.api.deps import reset_registry_for_tests

    reset_registry_for_tests()
    yield
    reset_registry_for_tests()


def build_board(
    *,
    rows: int = 9,
    cols: int = 9,
    start: tuple[int, int] = (1, 1),
    end: tuple[int, int] = (7, 7),
    rocks: tuple[tuple[int, int], ...] = (),
    level_id: str = "lvl",
) -> BoardModel:
    return BoardModel(
        rows=rows,
        cols=cols,
        start=Position(*start),
        end=Position(*end),
        obstacles=frozenset(Position(c, r) for c, r in rocks),
        level_id=level_id,
    )


@pytest.fixture()
def make_board() -> Callable[..., BoardModel]:
    return build_board


@dataclass(slots=True)
class PendingLevel:
    difficulty: Difficulty
    request_id: int
    future: asyncio.Future[BoardModel]

    def succeed(self, board: BoardModel) -> None:
        self.future.set_result(board)

    def fail(self, message: str = "Level service returned HTTP 503") -> None:
        self.future.set_exception(LevelProviderError(message))


@dataclass(slots=True)
class FakeLevelProvider:
    """Level provider whose responses the test controls.

    With `auto=True` every call answers immediately from `boards` (keyed by
    difficulty, default board otherwise). With `auto=False` calls park on a
    future until the test resolves them via `calls[i].succeed/fail`.
    """

    auto: bool = True
    boards: dict[Difficulty, BoardModel] = field(default_factory=dict)
    calls: list[PendingLevel] = field(default_factory=list)

    async def get_level(self, difficulty: Difficulty, *, request_id: int) -> BoardModel:
        fut: asyncio.Future[BoardModel] = asyncio.get_running_loop().create_future()
        pending = PendingLevel(difficulty=difficulty, request_id=request_id, future=fut)
        self.calls.append(pending)
        if self.auto:
            board = self.boards.get(difficulty) or build_board(level_id=f"{difficulty.value}-{request_id}")
            pending.succeed(board)
        return await fut


@dataclass(slots=True)
class ManualScheduler:
    """Collects animation timers; the test decides when they fire."""

    timers: list[tuple[float, Callable[[], None]]] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        self.timers.append((delay, callback))

    def fire_all(self) -> None:
        pending, self.timers = self.timers, []
        for _, cb in pending:
            cb()


class ImmediateScheduler:
    """Completes every animation as soon as it is scheduled."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        callback()


@pytest.fixture()
def provider() -> FakeLevelProvider:
    return FakeLevelProvider()


@pytest.fixture()
def manual_provider() -> FakeLevelProvider:
    return FakeLevelProvider(auto=False)


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def immediate_scheduler() -> ImmediateScheduler:
    return ImmediateScheduler()


@pytest.fixture()
def settle() -> Callable[[], object]:
    """Let pending tasks on the current loop run a few iterations."""

    async def _settle(iterations: int = 10) -> None:
        for _ in range(iterations):
            await asyncio.sleep(0)

    return _settle


@pytest.fixture()
def client_and_registry(
    provider: FakeLevelProvider,
    immediate_scheduler: ImmediateScheduler,
) -> Generator[tuple["TestClient", "SessionRegistry"], None, None]:
    """FastAPI TestClient wired to a registry backed by the fake provider."""

    from fastapi.testclient import TestClient

    from iceslide.api.deps import get_registry
    from iceslide.main import app
    from iceslide.session_store import SessionRegistry

    registry = SessionRegistry(provider=provider, scheduler_factory=lambda: immediate_scheduler)

    def _override() -> SessionRegistry:
        return registry

    app.dependency_overrides[get_registry] = _override
    with TestClient(app) as c:
        yield c, registry
    app.dependency_overrides.clear()
