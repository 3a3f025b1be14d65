from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, StrEnum

# Boards are scaled so that traversal speed matches a 9-wide board.
REFERENCE_BOARD_CELLS = 9


@dataclass(frozen=True, slots=True)
class Position:
    col: int
    row: int

    def step(self, direction: "Direction") -> "Position":
        dcol, drow = direction.delta
        return Position(self.col + dcol, self.row + drow)

    def manhattan(self, other: "Position") -> int:
        return abs(self.col - other.col) + abs(self.row - other.row)


class Direction(Enum):
    up = (0, -1)
    down = (0, 1)
    left = (-1, 0)
    right = (1, 0)

    @property
    def delta(self) -> tuple[int, int]:
        return self.value

    @classmethod
    def parse(cls, raw: str) -> "Direction":
        try:
            return cls[raw.strip().lower()]
        except KeyError as e:
            allowed = ",".join(d.name for d in cls)
            raise ValueError(f"Unknown direction '{raw}' (allowed: {allowed})") from e


class TileKind(StrEnum):
    wall = "wall"
    rock = "rock"
    ice = "ice"
    start = "start"
    end = "end"


@dataclass(frozen=True, slots=True)
class BoardModel:
    """Static description of one level.

    `level_id` is opaque; it only correlates the board to the request that produced it.
    """

    rows: int
    cols: int
    start: Position
    end: Position
    obstacles: frozenset[Position] = field(default_factory=frozenset)
    level_id: str = ""

    @property
    def size_factor(self) -> float:
        return max(self.rows, self.cols) / REFERENCE_BOARD_CELLS


def is_obstacle(board: BoardModel, pos: Position) -> bool:
    return pos in board.obstacles


def in_bounds(board: BoardModel, pos: Position) -> bool:
    return 0 <= pos.col < board.cols and 0 <= pos.row < board.rows


def is_wall(board: BoardModel, pos: Position) -> bool:
    on_ring = pos.row == 0 or pos.col == 0 or pos.row == board.rows - 1 or pos.col == board.cols - 1
    return on_ring and pos != board.start and pos != board.end


def is_blocked(board: BoardModel, pos: Position) -> bool:
    return not in_bounds(board, pos) or is_obstacle(board, pos) or is_wall(board, pos)


def tile_kind(board: BoardModel, pos: Position) -> TileKind:
    """Classify a cell for display.

    Start and end win over the ring; anything off the board reads as wall.
    """

    if not in_bounds(board, pos):
        return TileKind.wall
    if pos == board.start:
        return TileKind.start
    if pos == board.end:
        return TileKind.end
    if is_wall(board, pos):
        return TileKind.wall
    if is_obstacle(board, pos):
        return TileKind.rock
    return TileKind.ice


def tile_rows(board: BoardModel) -> list[list[TileKind]]:
    return [[tile_kind(board, Position(col, row)) for col in range(board.cols)] for row in range(board.rows)]
