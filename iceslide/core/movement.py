from __future__ import annotations

from iceslide.core.board import BoardModel, Direction, Position, is_blocked

# Seconds per tile on a reference (9-wide) board.
BASE_TILE_SECONDS = 0.09


def slide(board: BoardModel, start: Position, direction: Direction) -> Position:
    """Slide from `start` until the next cell is blocked.

    Returns `start` itself when the very first step is blocked. The impassable
    ring (or the board edge) bounds the walk to max(rows, cols) steps.
    """

    pos = start
    while True:
        nxt = pos.step(direction)
        if is_blocked(board, nxt):
            return pos
        pos = nxt


def steps_between(a: Position, b: Position) -> int:
    return a.manhattan(b)


def animation_duration(board: BoardModel, steps: int, *, base_tile_seconds: float = BASE_TILE_SECONDS) -> float:
    return max(steps, 1) * (base_tile_seconds / board.size_factor)
