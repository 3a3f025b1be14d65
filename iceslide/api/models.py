from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from iceslide.core.board import BoardModel, Position, TileKind, tile_rows


class Difficulty(StrEnum):
    easy = "easy"
    medium = "medium"
    hard = "hard"
    extreme = "extreme"


DIFFICULTIES: tuple[Difficulty, ...] = (
    Difficulty.easy,
    Difficulty.medium,
    Difficulty.hard,
    Difficulty.extreme,
)


class SessionPhase(StrEnum):
    idle = "idle"
    loading = "loading"
    ready = "ready"
    won = "won"
    failed = "failed"


class PointModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    col: int
    row: int

    @model_validator(mode="before")
    @classmethod
    def _accept_coord_pairs(cls, data: Any) -> Any:
        # The level service may send points as [col, row] pairs.
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError("point must be a [col, row] pair")
            return {"col": data[0], "row": data[1]}
        return data

    @classmethod
    def from_position(cls, pos: Position) -> "PointModel":
        return cls(col=pos.col, row=pos.row)

    def to_position(self) -> Position:
        return Position(self.col, self.row)


class LevelPayload(BaseModel):
    """Board JSON as returned by the level service.

    Only the fields the engine needs are read; anything else (e.g. `grid`) is ignored.
    """

    rows: int = Field(..., gt=0)
    cols: int = Field(..., gt=0)
    start: PointModel
    end: PointModel
    rocks: list[PointModel] = Field(default_factory=list, validation_alias=AliasChoices("rocks", "obstacles"))
    level_id: str | None = Field(default=None, validation_alias=AliasChoices("levelId", "level_id", "id"))

    @field_validator("level_id", mode="before")
    @classmethod
    def _stringify_level_id(cls, v: Any) -> Any:
        if v is None:
            return None
        return str(v)

    @model_validator(mode="after")
    def _endpoints_on_board(self) -> "LevelPayload":
        for name in ("start", "end"):
            p: PointModel = getattr(self, name)
            if not (0 <= p.col < self.cols and 0 <= p.row < self.rows):
                raise ValueError(f"{name} ({p.col}, {p.row}) is outside a {self.cols}x{self.rows} board")
        return self

    def to_board(self, *, fallback_level_id: str) -> BoardModel:
        return BoardModel(
            rows=self.rows,
            cols=self.cols,
            start=self.start.to_position(),
            end=self.end.to_position(),
            obstacles=frozenset(p.to_position() for p in self.rocks),
            level_id=self.level_id or fallback_level_id,
        )


class BoardView(BaseModel):
    level_id: str
    rows: int
    cols: int
    start: PointModel
    end: PointModel
    rocks: list[PointModel]

    # Row-major tile classification for renderers.
    tiles: list[list[TileKind]]

    @classmethod
    def from_board(cls, board: BoardModel) -> "BoardView":
        return cls(
            level_id=board.level_id,
            rows=board.rows,
            cols=board.cols,
            start=PointModel.from_position(board.start),
            end=PointModel.from_position(board.end),
            rocks=[PointModel.from_position(p) for p in sorted(board.obstacles, key=lambda p: (p.row, p.col))],
            tiles=tile_rows(board),
        )


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    state: SessionPhase
    difficulty: Difficulty
    board: BoardView | None = None
    player: PointModel | None = None
    won: bool = False
    win_count: int = 0
    loading: bool = False
    error: str | None = None
    animation_in_flight: bool = False
    animation_duration_seconds: float
    request_id: int = 0


class SessionCreateRequest(BaseModel):
    difficulty: Difficulty | None = None
    # Block until the first level request settles.
    wait: bool = False


class MoveRequest(BaseModel):
    direction: str = Field(..., min_length=1)


class DifficultyRequest(BaseModel):
    difficulty: Difficulty
    wait: bool = False


class SessionListResponse(BaseModel):
    sessions: list[SessionSnapshot]


class DifficultyListResponse(BaseModel):
    difficulties: list[Difficulty]
